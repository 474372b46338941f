# src/tools/registry.py
"""Closed dispatch from tool names to tool instances."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from sevenpools.tools.base_tool import BaseTool

logger = logging.getLogger(__name__)


class ToolName(str, Enum):
    SEARCH = "search"
    FETCH = "fetch"
    ANALYZE_POOLS = "analyze_pools"
    POOL_BRIDGE = "pool_bridge"
    LOCATION_NEIGHBORS = "location_neighbors"
    SET_PERSONA = "set_persona"
    CLEAR_PERSONA = "clear_persona"


class UnknownToolError(KeyError):
    """Raised by ``ToolRegistry.get`` for a name outside ``ToolName``."""


class ToolRegistry:
    """One instance per ``ToolName``; ``dispatch`` never raises."""

    def __init__(self, tools: list[BaseTool]) -> None:
        self._tools: dict[ToolName, BaseTool] = {}
        for tool in tools:
            self._tools[ToolName(tool.name)] = tool
        missing = [n.value for n in ToolName if n not in self._tools]
        if missing:
            raise ValueError(f"Missing tools: {', '.join(missing)}")

    @property
    def names(self) -> list[str]:
        return [n.value for n in ToolName]

    def get(self, name: str | ToolName) -> BaseTool:
        try:
            return self._tools[ToolName(name)]
        except ValueError as e:
            raise UnknownToolError(name) from e

    async def dispatch(self, name: str, arguments: dict[str, Any] | None = None) -> dict[str, Any]:
        try:
            tool = self.get(name)
        except UnknownToolError:
            logger.warning("Unknown tool requested: %s", name)
            return {"ok": False, "error": f"Unknown tool: {name}", "error_code": "unknown_tool"}
        if arguments is not None and not isinstance(arguments, dict):
            return tool.error_payload("Invalid parameters: arguments must be an object")
        logger.info("Dispatching %s", tool.name)
        return await tool.invoke(arguments)

    def tool_schemas(self) -> list[dict[str, Any]]:
        return [self._tools[n].schema() for n in ToolName]
