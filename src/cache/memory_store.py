# src/cache/memory_store.py
"""Process-local cache store (CACHE_BACKEND=memory, the default)."""

from __future__ import annotations

import json
import time
from collections.abc import Callable
from typing import Any

from sevenpools.cache.base_cache_store import BaseCacheStore


class MemoryCacheStore(BaseCacheStore):
    """Dict-backed cache. Values are stored serialized so reads never alias writes."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[str, float | None]] = {}

    def _live(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        data, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._entries[key]
            return None
        return data

    def _expiry(self, ttl_seconds: int | None) -> float | None:
        return None if ttl_seconds is None else self._clock() + ttl_seconds

    async def get(self, key: str) -> dict[str, Any] | None:
        data = self._live(key)
        return None if data is None else json.loads(data)

    async def set(
        self, key: str, value: dict[str, Any], ttl_seconds: int | None = None
    ) -> None:
        self._entries[key] = (json.dumps(value, default=str), self._expiry(ttl_seconds))

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def set_if_absent(
        self, key: str, value: dict[str, Any], ttl_seconds: int | None = None
    ) -> bool:
        # No await between check and write: atomic on the event loop.
        if self._live(key) is not None:
            return False
        self._entries[key] = (json.dumps(value, default=str), self._expiry(ttl_seconds))
        return True

    def __len__(self) -> int:
        return sum(1 for key in list(self._entries) if self._live(key) is not None)
