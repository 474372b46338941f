# src/jobs/build_capsule_job.py
"""Guarded capsule build: one in-flight build per capsule key.

The lease ``job_lock:build_capsule:<key>`` is taken without waiting; a
caller that finds it held treats the build as already running and does
nothing. Unless forced, a capsule that is valid and not due for refresh
is served instead of being rebuilt.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from sevenpools.cache.lock import CacheLock
from sevenpools.capsules.base_capsule_store import BaseCapsuleStore
from sevenpools.capsules.models import CapsuleKey, StyleCapsuleRecord, utcnow
from sevenpools.config.settings import Settings
from sevenpools.jobs.base_job_queue import BaseJob, CapsuleBuildError
from sevenpools.persona.capsule_builder import StyleCapsuleBuilder

logger = logging.getLogger(__name__)

BUILD_QUEUE = "style_capsule"
BUILD_IN_PROGRESS = "build_in_progress"


class BuildStyleCapsuleJob(BaseJob):
    """Build and persist one capsule under the per-key lease."""

    queue_name = BUILD_QUEUE

    def __init__(
        self,
        settings: Settings,
        builder: StyleCapsuleBuilder,
        capsule_store: BaseCapsuleStore,
        lock: CacheLock,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._settings = settings
        self._builder = builder
        self._capsules = capsule_store
        self._lock = lock
        self._clock = clock

    def capsule_key(
        self, persona_id: str, era: str | None = None, require_rights: str = "public"
    ) -> CapsuleKey:
        return CapsuleKey(
            persona_id=persona_id,
            era=era,
            rights_scope=require_rights,
            graph_version=self._settings.graph_version,
            lexicon_version=self._settings.lexicon_version,
        )

    async def perform(
        self,
        persona_id: str,
        persona_label: str | None = None,
        era: str | None = None,
        require_rights: str = "public",
        force: bool = False,
    ) -> dict[str, Any] | None:
        """Background entry point.

        Returns None when another build holds the lease.

        Raises:
            CapsuleBuildError: If the build ran and failed.
        """
        logger.info("BuildStyleCapsuleJob: Building capsule for %s", persona_id)
        result = await self.build_now(
            persona_id,
            persona_label=persona_label,
            era=era,
            require_rights=require_rights,
            force=force,
        )
        if result.get("error_code") == BUILD_IN_PROGRESS:
            return None
        if not result.get("ok"):
            logger.error(
                "BuildStyleCapsuleJob: Failed to build capsule for %s: %s",
                persona_id, result.get("error"),
            )
            raise CapsuleBuildError(f"Capsule build failed: {result.get('error')}")

        meta = result.get("meta", {})
        logger.info(
            "StyleCapsule built: persona=%s, confidence=%s, corpus_size=%s, time=%ss",
            persona_id,
            result.get("style_confidence"),
            meta.get("corpus_size"),
            meta.get("execution_time"),
        )
        return result

    async def build_now(
        self,
        persona_id: str,
        persona_label: str | None = None,
        era: str | None = None,
        require_rights: str = "public",
        force: bool = False,
    ) -> dict[str, Any]:
        """Run the guarded build and return the builder's response."""
        key = self.capsule_key(persona_id, era, require_rights)
        async with self._lock.held(
            key.lock_key(), self._settings.build_lock_ttl_seconds
        ) as acquired:
            if not acquired:
                logger.info("BuildStyleCapsuleJob: Already running for %s", key.lock_key())
                return {
                    "ok": False,
                    "error": "Build already running",
                    "error_code": BUILD_IN_PROGRESS,
                    "persona_id": persona_id,
                    "persona_label": persona_label,
                }

            if not force:
                fresh = await self._fresh_capsule(key)
                if fresh is not None:
                    logger.info("BuildStyleCapsuleJob: Fresh capsule exists for %s", persona_id)
                    return {
                        **fresh.payload(),
                        "meta": {
                            "cache": "db",
                            "built_by_job": False,
                            "skipped": True,
                            "ttl_seconds": fresh.ttl_seconds(self._clock()),
                        },
                    }

            return await self._builder.build(
                persona_id,
                persona_label=persona_label,
                era=era,
                require_rights=require_rights,
            )

    async def _fresh_capsule(self, key: CapsuleKey) -> StyleCapsuleRecord | None:
        now = self._clock()
        record = await self._capsules.find_valid(key, now=now)
        if record is None:
            return None
        refresh_at = now + timedelta(hours=self._settings.refresh_window_hours)
        if record.expires_at <= refresh_at:
            return None
        return record
