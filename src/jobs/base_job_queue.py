# src/jobs/base_job_queue.py
"""Job and queue interfaces for background capsule work."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from sevenpools.capsules.models import utcnow


class CapsuleBuildError(Exception):
    """Raised by a background build so the queue records the failure."""


class BaseJob(ABC):
    """A unit of background work, run by a queue with keyword arguments."""

    queue_name: str = "default"

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    async def perform(self, **kwargs: Any) -> Any:
        """Run the job. Raising marks the job as failed."""


class JobRecord(BaseModel):
    """Outcome of one enqueued job."""

    job_id: str
    queue: str
    job: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    status: Literal["pending", "running", "succeeded", "failed"] = "pending"
    error: str | None = None
    enqueued_at: datetime = Field(default_factory=utcnow)
    finished_at: datetime | None = None


class BaseJobQueue(ABC):
    """Named-queue dispatch of jobs."""

    @abstractmethod
    async def enqueue(self, queue: str, job: BaseJob, **kwargs: Any) -> str:
        """Schedule ``job.perform(**kwargs)`` on ``queue``. Returns a job id."""

    @abstractmethod
    async def drain(self) -> None:
        """Wait until every scheduled job (including ones they enqueue) has finished."""

    @property
    @abstractmethod
    def records(self) -> list[JobRecord]:
        """Every job seen so far, in enqueue order."""
