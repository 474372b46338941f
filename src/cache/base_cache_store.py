# src/cache/base_cache_store.py
"""Abstract cache store interface.

Values are JSON-compatible dicts. Entries written with a TTL read as
missing once expired. The cache is never authoritative: callers must
tolerate a miss at any time.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends."""

    @abstractmethod
    async def get(self, key: str) -> dict[str, Any] | None:
        """Retrieve a live entry, or None."""

    @abstractmethod
    async def set(
        self, key: str, value: dict[str, Any], ttl_seconds: int | None = None
    ) -> None:
        """Store an entry, replacing any previous value."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove an entry."""

    @abstractmethod
    async def set_if_absent(
        self, key: str, value: dict[str, Any], ttl_seconds: int | None = None
    ) -> bool:
        """Atomically store an entry only if no live entry exists.

        Returns:
            True if this call wrote the entry.
        """

    def close(self) -> None:
        """Release backend resources (no-op by default)."""
