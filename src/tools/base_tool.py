# src/tools/base_tool.py
"""Standard interface for tools exposed to the dispatcher."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from pydantic import ValidationError

from sevenpools.logging.context import set_tool_context
from sevenpools.tools.models import ToolParams

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=ToolParams)


class BaseTool(ABC, Generic[P]):
    """A named tool taking a validated parameter model and returning a JSON-safe dict.

    ``invoke`` is the dispatcher boundary: it validates raw arguments and
    converts every failure into the tool's own error shape.
    """

    name: str
    description: str
    params_model: type[P]

    @abstractmethod
    async def run(self, params: P) -> dict[str, Any]:
        """Execute the tool. Implementations catch their own errors."""

    @abstractmethod
    def error_payload(
        self, message: str, arguments: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """The tool's error shape carrying ``message``."""

    async def invoke(self, arguments: dict[str, Any] | None = None) -> dict[str, Any]:
        set_tool_context(self.name)
        try:
            params = self.params_model.model_validate(arguments or {})
        except ValidationError as e:
            logger.info("%s: invalid parameters: %s", self.name, e.errors(include_url=False))
            return self.error_payload(f"Invalid parameters: {_describe(e)}", arguments)
        try:
            return await self.run(params)
        except Exception as e:
            logger.exception("%s failed", self.name)
            return self.error_payload(f"{self.name} failed: {e}", params.model_dump())

    def schema(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.params_model.model_json_schema(),
        }


def _describe(error: ValidationError) -> str:
    parts = []
    for err in error.errors(include_url=False):
        loc = ".".join(str(p) for p in err["loc"]) or "arguments"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)
