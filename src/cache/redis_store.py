# src/cache/redis_store.py
"""Redis-based cache store (CACHE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Suitable for multi-instance deployments; ``set_if_absent`` maps to
``SET NX EX`` so build locks hold across processes.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from sevenpools.cache.base_cache_store import BaseCacheStore

logger = logging.getLogger(__name__)

_KEY_PREFIX = "sevenpools:cache:"


class RedisCacheStore(BaseCacheStore):
    """Redis-backed cache store for distributed deployments."""

    def __init__(self, redis_url: str) -> None:
        try:
            import redis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._client = redis.Redis.from_url(redis_url, decode_responses=True)

    async def get(self, key: str) -> dict[str, Any] | None:
        data = self._client.get(f"{_KEY_PREFIX}{key}")
        if data is None:
            return None
        try:
            return json.loads(data)
        except json.JSONDecodeError as e:
            logger.warning("Failed to deserialize cache entry %s: %s", key, e)
            return None

    async def set(
        self, key: str, value: dict[str, Any], ttl_seconds: int | None = None
    ) -> None:
        self._client.set(
            f"{_KEY_PREFIX}{key}", json.dumps(value, default=str), ex=ttl_seconds
        )

    async def delete(self, key: str) -> None:
        self._client.delete(f"{_KEY_PREFIX}{key}")

    async def set_if_absent(
        self, key: str, value: dict[str, Any], ttl_seconds: int | None = None
    ) -> bool:
        written = self._client.set(
            f"{_KEY_PREFIX}{key}",
            json.dumps(value, default=str),
            nx=True,
            ex=ttl_seconds,
        )
        return bool(written)

    def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()
