# src/capsules/base_capsule_store.py
"""Abstract StyleCapsule table interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from sevenpools.capsules.models import CapsuleKey, StyleCapsuleRecord


class CapsulePersistenceError(Exception):
    """Raised when a capsule row cannot be written."""


class BaseCapsuleStore(ABC):
    """Durable, authoritative store of built capsules."""

    @abstractmethod
    async def insert(self, record: StyleCapsuleRecord) -> StyleCapsuleRecord:
        """Persist a new row, superseding any previous row with the same key.

        Returns:
            The stored record with its ``id`` set.

        Raises:
            CapsulePersistenceError: If the row cannot be written.
        """

    @abstractmethod
    async def find_valid(
        self, key: CapsuleKey, now: datetime | None = None
    ) -> StyleCapsuleRecord | None:
        """The non-expired row for a key, if any."""

    @abstractmethod
    async def find_stale(
        self,
        refresh_window_hours: int,
        limit: int,
        now: datetime | None = None,
        after: tuple[datetime, int] | None = None,
    ) -> list[StyleCapsuleRecord]:
        """Rows expiring before ``now + window``, ordered by ``(expires_at, id)``.

        ``after`` is the ``(expires_at, id)`` of the last row of the previous
        page; only rows ordered after it are returned.
        """

    @abstractmethod
    async def delete_expired(
        self, batch_size: int, now: datetime | None = None
    ) -> int:
        """Delete expired rows in bounded batches. Returns total deleted."""

    @abstractmethod
    async def count(self) -> int:
        """Total number of rows."""

    def close(self) -> None:
        """Release backend resources (no-op by default)."""
