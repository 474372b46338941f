# src/tools/clear_persona.py
"""clear_persona: acknowledge that the caller dropped its persona.

No session state is held server side, so there is nothing to delete.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sevenpools.capsules.models import utcnow
from sevenpools.tools.base_tool import BaseTool
from sevenpools.tools.models import ClearPersonaParams

logger = logging.getLogger(__name__)


class ClearPersonaTool(BaseTool[ClearPersonaParams]):
    name = "clear_persona"
    description = "Stop applying a persona style to answers"
    params_model = ClearPersonaParams

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock

    def _meta(self) -> dict[str, Any]:
        return {
            "timestamp": self._clock().isoformat(timespec="seconds"),
            "action": "clear_persona",
        }

    def error_payload(
        self, message: str, arguments: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return {"ok": False, "error": message, "meta": self._meta()}

    async def run(self, params: ClearPersonaParams) -> dict[str, Any]:
        try:
            logger.info("ClearPersonaTool: Persona cleared")
            return {"ok": True, "message": "Persona style cleared", "meta": self._meta()}
        except Exception as e:
            logger.error("ClearPersonaTool error: %s", e)
            return {
                "ok": False,
                "error": f"Failed to clear persona: {e}",
                "meta": {"action": "clear_persona"},
            }
