# src/tools/set_persona.py
"""set_persona: resolve a style capsule for a persona, fast or in the background.

Order of resolution: parameter validation, feature flag, ``off`` mode,
cache, valid database row, then a synchronous build bounded by
``fast_path_timeout_seconds``. When that build fails or times out, a
background build is enqueued and a provisional minimal capsule is returned.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from sevenpools.cache.base_cache_store import BaseCacheStore
from sevenpools.capsules.base_capsule_store import BaseCapsuleStore
from sevenpools.capsules.models import CapsuleKey, normalize_persona_key, utcnow
from sevenpools.config.settings import Settings
from sevenpools.core.naming import humanize, titleize
from sevenpools.jobs.base_job_queue import BaseJobQueue
from sevenpools.jobs.build_capsule_job import BUILD_QUEUE, BuildStyleCapsuleJob
from sevenpools.tools.base_tool import BaseTool
from sevenpools.tools.models import SetPersonaParams

logger = logging.getLogger(__name__)

STYLE_MODES = ("off", "light", "medium", "strong")
STYLE_SCOPES = ("narration_only", "examples_only", "full_answer")
RIGHTS_LEVELS = ("public", "internal", "any")
MAX_QUOTE_PCT = 0.2

_BUILD_ERRORS = (
    (re.compile(r"persona not found", re.IGNORECASE), "persona_not_found"),
    (re.compile(r"rights restricted", re.IGNORECASE), "rights_restricted"),
    (re.compile(r"low corpus", re.IGNORECASE), "low_corpus"),
)


def build_error_code(message: str | None) -> str:
    """Classify a failed build's error message."""
    for pattern, code in _BUILD_ERRORS:
        if message and pattern.search(message):
            return code
    return "build_failed"


def persona_label_for(persona: str) -> str:
    if ":" in persona:
        return titleize(humanize(persona.split(":", 1)[1]))
    return titleize(persona)


def off_response() -> dict[str, Any]:
    return {
        "ok": True,
        "persona_id": None,
        "persona_label": "Style mode disabled",
        "style_capsule": None,
        "style_confidence": 0.0,
        "rights_summary": {"quotable": False, "attribution_required": False},
        "sources": [],
        "meta": {"cache": "n/a", "built_by_job": False, "style_mode": "off"},
    }


def minimal_capsule(persona: str, error: str | None) -> dict[str, Any]:
    """Provisional low-confidence capsule returned while a build is queued."""
    return {
        "ok": True,
        "persona_id": normalize_persona_key(persona),
        "persona_label": persona_label_for(persona),
        "style_capsule": {
            "tone": ["building"],
            "cadence": "pending analysis",
            "devices": [],
            "vocabulary": [],
            "metaphors": [],
            "dos": ["wait for full analysis"],
            "donts": ["use incomplete data"],
            "era": "unknown",
        },
        "style_confidence": 0.1,
        "rights_summary": {
            "quotable": False,
            "attribution_required": True,
            "attribution_text": "Style analysis in progress",
            "visibility": "restricted",
        },
        "sources": [],
        "meta": {
            "cache": "miss",
            "built_by_job": True,
            "minimal_capsule": True,
            "build_status": "enqueued",
            "error": error,
            "error_code": build_error_code(error),
        },
    }


def _error(message: str, code: str | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {"ok": False, "error": message}
    if code:
        payload["error_code"] = code
    payload["persona_id"] = None
    payload["persona_label"] = None
    return payload


class SetPersonaTool(BaseTool[SetPersonaParams]):
    name = "set_persona"
    description = (
        "Adopt the writing style of a Burning Man persona. Returns a style "
        "capsule (tone, cadence, devices, vocabulary) with rights guidance."
    )
    params_model = SetPersonaParams

    def __init__(
        self,
        settings: Settings,
        cache: BaseCacheStore,
        capsule_store: BaseCapsuleStore,
        build_job: BuildStyleCapsuleJob,
        queue: BaseJobQueue,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._settings = settings
        self._cache = cache
        self._capsules = capsule_store
        self._build_job = build_job
        self._queue = queue
        self._clock = clock
        # builds abandoned by a timed-out caller keep running to completion
        self._stray: set[asyncio.Task] = set()

    def error_payload(
        self, message: str, arguments: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return _error(message)

    def _validate(self, params: SetPersonaParams) -> str | None:
        if params.style_mode not in STYLE_MODES:
            return "Invalid style_mode"
        if params.style_scope not in STYLE_SCOPES:
            return "Invalid style_scope"
        if params.require_rights not in RIGHTS_LEVELS:
            return "Invalid require_rights"
        if not 0.0 <= params.max_quote_pct <= MAX_QUOTE_PCT:
            return "max_quote_pct out of range"
        return None

    def capsule_key(self, params: SetPersonaParams) -> CapsuleKey:
        return self._build_job.capsule_key(
            normalize_persona_key(params.persona), params.era, params.require_rights
        )

    async def run(self, params: SetPersonaParams) -> dict[str, Any]:
        invalid = self._validate(params)
        if invalid:
            return _error(invalid, "invalid_params")
        if not self._settings.persona_style_enabled:
            return _error("Persona style feature is not enabled", "feature_disabled")
        if params.style_mode == "off":
            return off_response()

        try:
            return await self._resolve(params)
        except Exception as e:
            logger.exception("SetPersonaTool error for %s", params.persona)
            return _error(f"Persona setup failed: {e}")

    async def _resolve(self, params: SetPersonaParams) -> dict[str, Any]:
        key = self.capsule_key(params)
        cached = await self._cache.get(key.cache_key())
        if cached:
            logger.info("SetPersonaTool: Cache hit for %s", params.persona)
            return {**cached, "meta": {"cache": "hit", "built_by_job": False}}

        stored = await self._from_database(key)
        if stored is not None:
            return stored

        logger.info("SetPersonaTool: Cache miss for %s, attempting fast path build", params.persona)
        result = await self._fast_build(key.persona_id, params.era, params.require_rights)
        if result.get("ok"):
            logger.info("SetPersonaTool: Fast build succeeded for %s", params.persona)
            return {
                **result,
                "meta": {
                    **result.get("meta", {}),
                    "built_by_job": False,
                    "fast_path": True,
                    "cache": "miss",
                },
            }

        logger.info("SetPersonaTool: Fast build failed, enqueuing job for %s", params.persona)
        await self._enqueue(key.persona_id, params.era, params.require_rights)
        return minimal_capsule(params.persona, result.get("error"))

    async def _from_database(self, key: CapsuleKey) -> dict[str, Any] | None:
        now = self._clock()
        record = await self._capsules.find_valid(key, now=now)
        if record is None:
            return None
        logger.info("SetPersonaTool: Serving stored capsule for %s", key.persona_id)
        refresh_at = now + timedelta(hours=self._settings.refresh_window_hours)
        refreshing = record.expires_at <= refresh_at
        if refreshing:
            await self._enqueue(key.persona_id, key.era, key.rights_scope, force=True)
        return {
            **record.payload(),
            "meta": {
                "cache": "db",
                "built_by_job": False,
                "ttl_seconds": record.ttl_seconds(now),
                "refresh_enqueued": refreshing,
            },
        }

    async def _fast_build(
        self, persona_id: str, era: str | None, require_rights: str
    ) -> dict[str, Any]:
        task = asyncio.create_task(
            self._build_job.build_now(persona_id, era=era, require_rights=require_rights)
        )
        try:
            return await asyncio.wait_for(
                asyncio.shield(task), timeout=self._settings.fast_path_timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.info("SetPersonaTool: Fast build timed out for %s", persona_id)
            self._stray.add(task)
            task.add_done_callback(self._stray_done)
            return {"ok": False, "error": "Build timed out"}
        except Exception as e:
            logger.error("SetPersonaTool: Fast build failed for %s: %s", persona_id, e)
            return {"ok": False, "error": str(e)}

    def _stray_done(self, task: asyncio.Task) -> None:
        self._stray.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("SetPersonaTool: Background fast build failed: %s", error)

    async def wait_stray(self) -> None:
        """Wait for builds whose callers already gave up."""
        if self._stray:
            await asyncio.gather(*list(self._stray), return_exceptions=True)

    async def _enqueue(
        self, persona_id: str, era: str | None, require_rights: str, force: bool = False
    ) -> None:
        await self._queue.enqueue(
            BUILD_QUEUE,
            self._build_job,
            persona_id=persona_id,
            era=era,
            require_rights=require_rights,
            force=force,
        )
        logger.info("SetPersonaTool: Enqueued BuildStyleCapsuleJob for %s", persona_id)
