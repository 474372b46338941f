# src/jobs/local_queue.py
"""In-process job queue: each job runs as an asyncio task.

Queues may cap how many of their jobs run at once. A failed job is
logged and recorded; it never propagates into the caller that enqueued it.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any

from sevenpools.capsules.models import utcnow
from sevenpools.jobs.base_job_queue import BaseJob, BaseJobQueue, JobRecord

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = {"style_capsule": 3}


class LocalJobQueue(BaseJobQueue):
    """Run jobs concurrently on the current event loop."""

    def __init__(self, concurrency: dict[str, int] | None = None) -> None:
        limits = DEFAULT_CONCURRENCY if concurrency is None else concurrency
        self._limits = dict(limits)
        self._semaphores: dict[str, asyncio.Semaphore] = {}
        self._tasks: set[asyncio.Task] = set()
        self._records: list[JobRecord] = []

    @property
    def records(self) -> list[JobRecord]:
        return list(self._records)

    @property
    def pending(self) -> int:
        return sum(1 for t in self._tasks if not t.done())

    def _semaphore(self, queue: str) -> asyncio.Semaphore | None:
        limit = self._limits.get(queue)
        if not limit:
            return None
        if queue not in self._semaphores:
            self._semaphores[queue] = asyncio.Semaphore(limit)
        return self._semaphores[queue]

    async def enqueue(self, queue: str, job: BaseJob, **kwargs: Any) -> str:
        record = JobRecord(
            job_id=uuid.uuid4().hex,
            queue=queue,
            job=job.name,
            arguments=dict(kwargs),
        )
        self._records.append(record)
        task = asyncio.create_task(self._run(record, job, kwargs))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info("Enqueued %s on %s (%s)", job.name, queue, record.job_id)
        return record.job_id

    async def _run(self, record: JobRecord, job: BaseJob, kwargs: dict[str, Any]) -> None:
        semaphore = self._semaphore(record.queue)
        if semaphore is not None:
            await semaphore.acquire()
        record.status = "running"
        try:
            await job.perform(**kwargs)
            record.status = "succeeded"
        except Exception as e:
            record.status = "failed"
            record.error = str(e)
            logger.error("Job %s (%s) failed: %s", job.name, record.job_id, e)
        finally:
            record.finished_at = utcnow()
            if semaphore is not None:
                semaphore.release()

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
