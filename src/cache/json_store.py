# src/cache/json_store.py
"""JSON file-based cache store (CACHE_BACKEND=json).

Stores one JSON file per key under CACHE_ROOT.
"""

from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from typing import Any
from urllib.parse import quote

from sevenpools.cache.base_cache_store import BaseCacheStore

logger = logging.getLogger(__name__)


class JsonCacheStore(BaseCacheStore):
    """File-based cache store using JSON files."""

    def __init__(self, cache_root: Path | str) -> None:
        self._root = Path(cache_root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)

    async def get(self, key: str) -> dict[str, Any] | None:
        return self._read_live(key)

    async def set(
        self, key: str, value: dict[str, Any], ttl_seconds: int | None = None
    ) -> None:
        path = self._entry_path(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(self._encode(value, ttl_seconds), encoding="utf-8")
        tmp.replace(path)

    async def delete(self, key: str) -> None:
        path = self._entry_path(key)
        if path.exists():
            path.unlink()

    async def set_if_absent(
        self, key: str, value: dict[str, Any], ttl_seconds: int | None = None
    ) -> bool:
        if self._read_live(key) is not None:
            return False
        path = self._entry_path(key)
        try:
            fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(self._encode(value, ttl_seconds))
        return True

    def _read_live(self, key: str) -> dict[str, Any] | None:
        path = self._entry_path(key)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Failed to read cache entry %s: %s", key, e)
            return None
        expires_at = data.get("expires_at")
        if expires_at is not None and expires_at <= time.time():
            path.unlink(missing_ok=True)
            return None
        return data.get("value")

    @staticmethod
    def _encode(value: dict[str, Any], ttl_seconds: int | None) -> str:
        expires_at = None if ttl_seconds is None else time.time() + ttl_seconds
        return json.dumps({"expires_at": expires_at, "value": value}, default=str)

    def _entry_path(self, key: str) -> Path:
        """Return file path for a cache key."""
        return self._root / f"{quote(key, safe='')}.json"
