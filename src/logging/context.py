# src/logging/context.py
"""Contextual logging support: attach request_id, tool, persona_id, stage to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Set per tool call; the capsule builder narrows them per stage.
_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_tool: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "tool", default=None
)
_persona_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "persona_id", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    request_id: str | None = None
    tool: str | None = None
    persona_id: str | None = None
    stage: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        tool=_tool.get(),
        persona_id=_persona_id.get(),
        stage=_stage.get(),
    )


def set_tool_context(tool: str, request_id: str | None = None) -> None:
    """Set tool-level context (called once per tool invocation)."""
    _tool.set(tool)
    _request_id.set(request_id)


def set_persona_context(persona_id: str | None, stage: str | None = None) -> None:
    """Set persona-level context (called per builder stage)."""
    _persona_id.set(persona_id)
    _stage.set(stage)


def set_stage(stage: str | None) -> None:
    _stage.set(stage)


def clear_context() -> None:
    """Reset all context variables."""
    _request_id.set(None)
    _tool.set(None)
    _persona_id.set(None)
    _stage.set(None)
