# src/cache/sqlite_store.py
"""SQLite-based cache store (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3, no external dependency. Shared by processes on one host.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any

from sevenpools.cache.base_cache_store import BaseCacheStore

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS cache_entries (
    key TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    expires_at REAL
);
CREATE INDEX IF NOT EXISTS idx_cache_expires_at ON cache_entries(expires_at);
"""


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed cache store."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def get(self, key: str) -> dict[str, Any] | None:
        row = self._conn.execute(
            "SELECT data FROM cache_entries WHERE key = ? "
            "AND (expires_at IS NULL OR expires_at > ?)",
            (key, time.time()),
        ).fetchone()
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except json.JSONDecodeError as e:
            logger.warning("Failed to deserialize cache entry %s: %s", key, e)
            return None

    async def set(
        self, key: str, value: dict[str, Any], ttl_seconds: int | None = None
    ) -> None:
        self._conn.execute(
            "INSERT OR REPLACE INTO cache_entries (key, data, expires_at) VALUES (?, ?, ?)",
            (key, json.dumps(value, default=str), _expiry(ttl_seconds)),
        )
        self._conn.commit()

    async def delete(self, key: str) -> None:
        self._conn.execute("DELETE FROM cache_entries WHERE key = ?", (key,))
        self._conn.commit()

    async def set_if_absent(
        self, key: str, value: dict[str, Any], ttl_seconds: int | None = None
    ) -> bool:
        with self._conn:
            self._conn.execute(
                "DELETE FROM cache_entries WHERE key = ? AND expires_at IS NOT NULL "
                "AND expires_at <= ?",
                (key, time.time()),
            )
            cursor = self._conn.execute(
                "INSERT OR IGNORE INTO cache_entries (key, data, expires_at) VALUES (?, ?, ?)",
                (key, json.dumps(value, default=str), _expiry(ttl_seconds)),
            )
        return cursor.rowcount == 1

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()


def _expiry(ttl_seconds: int | None) -> float | None:
    return None if ttl_seconds is None else time.time() + ttl_seconds
