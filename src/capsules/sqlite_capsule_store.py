# src/capsules/sqlite_capsule_store.py
"""SQLite-backed StyleCapsule table.

Uses stdlib sqlite3. Timestamps are stored as UTC ISO-8601 strings with
microseconds so that string comparison follows time order.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path

from pydantic import ValidationError

from sevenpools.capsules.base_capsule_store import (
    BaseCapsuleStore,
    CapsulePersistenceError,
)
from sevenpools.capsules.models import CapsuleKey, StyleCapsuleRecord, utcnow

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS style_capsules (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    persona_id TEXT NOT NULL,
    persona_label TEXT,
    era TEXT,
    rights_scope TEXT NOT NULL DEFAULT 'public',
    capsule_json TEXT NOT NULL,
    confidence REAL NOT NULL CHECK (confidence >= 0.0 AND confidence <= 1.0),
    sources_json TEXT NOT NULL DEFAULT '[]',
    graph_version TEXT NOT NULL,
    lexicon_version TEXT NOT NULL,
    created_at TEXT NOT NULL,
    expires_at TEXT NOT NULL,
    CHECK (expires_at > created_at)
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_style_capsules_lookup ON style_capsules (
    persona_id, COALESCE(era, ''), rights_scope, graph_version, lexicon_version
);
CREATE INDEX IF NOT EXISTS idx_style_capsules_expires_at ON style_capsules (expires_at);
"""

_COLUMNS = (
    "id, persona_id, persona_label, era, rights_scope, capsule_json, confidence, "
    "sources_json, graph_version, lexicon_version, created_at, expires_at"
)

_KEY_CLAUSE = (
    "persona_id = ? AND COALESCE(era, '') = ? AND rights_scope = ? "
    "AND graph_version = ? AND lexicon_version = ?"
)


def _ts(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _key_params(key: CapsuleKey) -> tuple:
    return (
        key.persona_id,
        key.era or "",
        key.rights_scope,
        key.graph_version,
        key.lexicon_version,
    )


class SqliteCapsuleStore(BaseCapsuleStore):
    """StyleCapsule rows in a SQLite database (``":memory:"`` for tests)."""

    def __init__(self, db_path: Path | str) -> None:
        target = str(db_path)
        if target != ":memory:":
            path = Path(target).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            target = str(path)
            self._conn = sqlite3.connect(target)
            self._conn.execute("PRAGMA journal_mode=WAL")
        else:
            self._conn = sqlite3.connect(target)
        self._conn.executescript(_SCHEMA)

    async def insert(self, record: StyleCapsuleRecord) -> StyleCapsuleRecord:
        try:
            with self._conn:
                self._conn.execute(
                    f"DELETE FROM style_capsules WHERE {_KEY_CLAUSE}",
                    _key_params(record.key),
                )
                cursor = self._conn.execute(
                    "INSERT INTO style_capsules (persona_id, persona_label, era, "
                    "rights_scope, capsule_json, confidence, sources_json, "
                    "graph_version, lexicon_version, created_at, expires_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        record.persona_id,
                        record.persona_label,
                        record.era,
                        record.rights_scope,
                        json.dumps(record.capsule_json),
                        record.confidence,
                        json.dumps(record.sources_json, default=str),
                        record.graph_version,
                        record.lexicon_version,
                        _ts(record.created_at),
                        _ts(record.expires_at),
                    ),
                )
        except sqlite3.Error as e:
            raise CapsulePersistenceError(f"Failed to persist capsule: {e}") from e
        return record.model_copy(update={"id": cursor.lastrowid})

    async def find_valid(
        self, key: CapsuleKey, now: datetime | None = None
    ) -> StyleCapsuleRecord | None:
        row = self._conn.execute(
            f"SELECT {_COLUMNS} FROM style_capsules WHERE {_KEY_CLAUSE} "
            "AND expires_at > ? ORDER BY expires_at DESC LIMIT 1",
            (*_key_params(key), _ts(now or utcnow())),
        ).fetchone()
        return self._to_record(row) if row else None

    async def find_stale(
        self,
        refresh_window_hours: int,
        limit: int,
        now: datetime | None = None,
        after: tuple[datetime, int] | None = None,
    ) -> list[StyleCapsuleRecord]:
        horizon = (now or utcnow()) + timedelta(hours=refresh_window_hours)
        query = f"SELECT {_COLUMNS} FROM style_capsules WHERE expires_at < ?"
        params: list = [_ts(horizon)]
        if after is not None:
            last_expires_at, last_id = after
            query += " AND (expires_at > ? OR (expires_at = ? AND id > ?))"
            params.extend([_ts(last_expires_at), _ts(last_expires_at), last_id])
        rows = self._conn.execute(
            f"{query} ORDER BY expires_at ASC, id ASC LIMIT ?", (*params, limit)
        ).fetchall()
        records = []
        for row in rows:
            record = self._to_record(row)
            if record is not None:
                records.append(record)
        return records

    async def delete_expired(
        self, batch_size: int, now: datetime | None = None
    ) -> int:
        cutoff = _ts(now or utcnow())
        total = 0
        while True:
            with self._conn:
                cursor = self._conn.execute(
                    "DELETE FROM style_capsules WHERE id IN ("
                    "SELECT id FROM style_capsules WHERE expires_at < ? LIMIT ?)",
                    (cutoff, batch_size),
                )
            deleted = cursor.rowcount
            total += deleted
            logger.debug("Deleted %d expired capsules", deleted)
            if deleted < batch_size:
                break
        return total

    async def count(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM style_capsules").fetchone()[0]

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    @staticmethod
    def _to_record(row: tuple) -> StyleCapsuleRecord | None:
        try:
            return StyleCapsuleRecord(
                id=row[0],
                persona_id=row[1],
                persona_label=row[2],
                era=row[3],
                rights_scope=row[4],
                capsule_json=json.loads(row[5]),
                confidence=row[6],
                sources_json=json.loads(row[7]),
                graph_version=row[8],
                lexicon_version=row[9],
                created_at=datetime.fromisoformat(row[10]),
                expires_at=datetime.fromisoformat(row[11]),
            )
        except (ValidationError, json.JSONDecodeError) as e:
            logger.warning("Skipping unreadable capsule row %s: %s", row[0], e)
            return None
