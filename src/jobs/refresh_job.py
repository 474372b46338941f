# src/jobs/refresh_job.py
"""Periodic capsule maintenance: refresh soon-to-expire capsules, purge expired ones."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from sevenpools.capsules.base_capsule_store import BaseCapsuleStore
from sevenpools.capsules.models import utcnow
from sevenpools.jobs.base_job_queue import BaseJob, BaseJobQueue
from sevenpools.jobs.build_capsule_job import BUILD_QUEUE, BuildStyleCapsuleJob

logger = logging.getLogger(__name__)

MAINTENANCE_QUEUE = "style_capsule_maintenance"


class RefreshStaleCapsulesJob(BaseJob):
    """Enqueue forced rebuilds for capsules expiring within the refresh window."""

    queue_name = MAINTENANCE_QUEUE

    def __init__(
        self,
        capsule_store: BaseCapsuleStore,
        build_job: BuildStyleCapsuleJob,
        queue: BaseJobQueue,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._capsules = capsule_store
        self._build_job = build_job
        self._queue = queue
        self._clock = clock

    async def perform(
        self,
        refresh_window_hours: int = 24,
        batch_size: int = 10,
        after_expires_at: datetime | None = None,
        after_id: int | None = None,
    ) -> int:
        """Returns the number of rebuilds enqueued.

        A full batch means more stale capsules may remain, so the job
        re-enqueues itself with the last row's ``(expires_at, id)`` as the
        cursor. Rows not yet rebuilt keep their position after the cursor
        however many earlier rows the rebuilds have replaced.
        """
        after = None
        if after_expires_at is not None and after_id is not None:
            after = (after_expires_at, after_id)
        logger.info(
            "RefreshStaleCapsulesJob: Starting refresh check (window: %dh)", refresh_window_hours
        )
        stale = await self._capsules.find_stale(
            refresh_window_hours, limit=batch_size, now=self._clock(), after=after
        )
        if not stale:
            logger.info("RefreshStaleCapsulesJob: No stale capsules found")
            return 0

        enqueued = 0
        failed = 0
        for capsule in stale:
            try:
                await self._queue.enqueue(
                    BUILD_QUEUE,
                    self._build_job,
                    persona_id=capsule.persona_id,
                    persona_label=capsule.persona_label,
                    era=capsule.era,
                    require_rights=capsule.rights_scope,
                    force=True,
                )
                enqueued += 1
            except Exception as e:
                failed += 1
                logger.error(
                    "RefreshStaleCapsulesJob: Failed to enqueue refresh for %s: %s",
                    capsule.persona_id, e,
                )

        logger.info(
            "StyleCapsule refresh: enqueued=%d, failed=%d, total_stale=%d",
            enqueued, failed, len(stale),
        )
        if len(stale) == batch_size:
            await self._queue.enqueue(
                MAINTENANCE_QUEUE,
                self,
                refresh_window_hours=refresh_window_hours,
                batch_size=batch_size,
                after_expires_at=stale[-1].expires_at,
                after_id=stale[-1].id,
            )
        return enqueued


async def cleanup_expired_capsules(
    capsule_store: BaseCapsuleStore,
    batch_size: int = 50,
    now: datetime | None = None,
) -> int:
    """Delete expired capsules in bounded batches. Returns the number deleted."""
    logger.info("Cleaning up expired style capsules")
    deleted = await capsule_store.delete_expired(batch_size, now=now or utcnow())
    if deleted:
        logger.info("Cleanup completed: deleted %d expired capsules", deleted)
    else:
        logger.info("No expired capsules to clean up")
    return deleted
