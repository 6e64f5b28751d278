# src/store/sqlite_store.py - v1
"""SQLite-based state store (STORE_BACKEND=sqlite).

Uses stdlib sqlite3, no external dependency. compare_and_set is a single
conditional UPDATE, so it stays correct across processes sharing the file.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from transbatch.store.base_state_store import BaseStateStore, VersionConflictError
from transbatch.store.models import StoredRecord, expiry_from_ttl

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS state_records (
    key TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    version INTEGER NOT NULL,
    updated_at TEXT NOT NULL,
    expires_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_expires_at ON state_records(expires_at);
"""


class SqliteStateStore(BaseStateStore):
    """SQLite-backed state store with versioned rows."""

    def __init__(
        self, db_path: Path | str, clock: Callable[[], datetime] | None = None
    ) -> None:
        super().__init__(clock)
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def get(self, key: str) -> StoredRecord | None:
        row = self._conn.execute(
            "SELECT data, version, updated_at, expires_at FROM state_records WHERE key = ?",
            (key,),
        ).fetchone()
        if row is None:
            return None
        try:
            record = StoredRecord(
                key=key,
                value=json.loads(row[0]),
                version=row[1],
                updated_at=datetime.fromisoformat(row[2]),
                expires_at=datetime.fromisoformat(row[3]) if row[3] else None,
            )
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning("Failed to deserialize state record %s: %s", key, e)
            return None
        if record.is_expired(self.now()):
            self._purge(key)
            return None
        return record

    async def put(
        self, key: str, value: dict[str, Any], ttl_seconds: int | None = None
    ) -> StoredRecord:
        current = await self.get(key)
        version = (current.version if current else 0) + 1
        now = self.now()
        expires_at = expiry_from_ttl(now, ttl_seconds)
        self._conn.execute(
            "INSERT OR REPLACE INTO state_records (key, data, version, updated_at, expires_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (key, json.dumps(value, default=str), version, now.isoformat(),
             expires_at.isoformat() if expires_at else None),
        )
        self._conn.commit()
        return StoredRecord(
            key=key, value=value, version=version, updated_at=now, expires_at=expires_at
        )

    async def compare_and_set(
        self,
        key: str,
        value: dict[str, Any],
        expected_version: int | None,
        ttl_seconds: int | None = None,
    ) -> StoredRecord:
        current = await self.get(key)  # also purges an expired row
        now = self.now()
        expires_at = expiry_from_ttl(now, ttl_seconds)
        payload = json.dumps(value, default=str)
        expires_text = expires_at.isoformat() if expires_at else None

        if expected_version is None:
            try:
                self._conn.execute(
                    "INSERT INTO state_records (key, data, version, updated_at, expires_at) "
                    "VALUES (?, ?, 1, ?, ?)",
                    (key, payload, now.isoformat(), expires_text),
                )
                self._conn.commit()
            except sqlite3.IntegrityError as e:
                raise VersionConflictError(
                    key, None, current.version if current else None
                ) from e
            return StoredRecord(
                key=key, value=value, version=1, updated_at=now, expires_at=expires_at
            )

        cursor = self._conn.execute(
            "UPDATE state_records SET data = ?, version = version + 1, updated_at = ?, "
            "expires_at = ? WHERE key = ? AND version = ?",
            (payload, now.isoformat(), expires_text, key, expected_version),
        )
        self._conn.commit()
        if cursor.rowcount != 1:
            raise VersionConflictError(
                key, expected_version, current.version if current else None
            )
        return StoredRecord(
            key=key,
            value=value,
            version=expected_version + 1,
            updated_at=now,
            expires_at=expires_at,
        )

    async def delete(self, key: str) -> None:
        self._purge(key)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def _purge(self, key: str) -> None:
        self._conn.execute("DELETE FROM state_records WHERE key = ?", (key,))
        self._conn.commit()
