# src/cache/lock.py
"""Named lease on top of the cache's atomic set-if-absent.

At most one holder per key until release or expiry. A caller that
loses the race does not wait.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from sevenpools.cache.base_cache_store import BaseCacheStore

logger = logging.getLogger(__name__)

LOCK_PREFIX = "job_lock:"


class CacheLock:
    """Lease-style mutex keyed by string."""

    def __init__(self, cache: BaseCacheStore, prefix: str = LOCK_PREFIX) -> None:
        self._cache = cache
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def acquire(self, key: str, ttl_seconds: int) -> bool:
        """Try to take the lease. Never blocks."""
        acquired = await self._cache.set_if_absent(
            self._key(key),
            {"locked_at": datetime.now(timezone.utc).isoformat()},
            ttl_seconds=ttl_seconds,
        )
        if not acquired:
            logger.debug("Lock already held: %s", key)
        return acquired

    async def release(self, key: str) -> None:
        await self._cache.delete(self._key(key))

    async def is_held(self, key: str) -> bool:
        return await self._cache.get(self._key(key)) is not None

    @asynccontextmanager
    async def held(self, key: str, ttl_seconds: int) -> AsyncIterator[bool]:
        """Yield whether the lease was won; release it on exit if so."""
        acquired = await self.acquire(key, ttl_seconds)
        try:
            yield acquired
        finally:
            if acquired:
                await self.release(key)
