# src/store/memory_store.py - v1
"""In-process state store (STORE_BACKEND=memory).

Suitable for tests and single-process poll loops; nothing survives a restart.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable

from transbatch.store.base_state_store import BaseStateStore, VersionConflictError
from transbatch.store.models import StoredRecord, expiry_from_ttl


class MemoryStateStore(BaseStateStore):
    """Dict-backed store with lazy expiry."""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        super().__init__(clock)
        self._records: dict[str, StoredRecord] = {}

    async def get(self, key: str) -> StoredRecord | None:
        record = self._live(key)
        return None if record is None else record.model_copy(deep=True)

    async def put(
        self, key: str, value: dict[str, Any], ttl_seconds: int | None = None
    ) -> StoredRecord:
        current = self._live(key)
        return self._write(key, value, (current.version if current else 0) + 1, ttl_seconds)

    async def compare_and_set(
        self,
        key: str,
        value: dict[str, Any],
        expected_version: int | None,
        ttl_seconds: int | None = None,
    ) -> StoredRecord:
        current = self._live(key)
        actual = current.version if current else None
        if actual != expected_version:
            raise VersionConflictError(key, expected_version, actual)
        return self._write(key, value, (actual or 0) + 1, ttl_seconds)

    async def delete(self, key: str) -> None:
        self._records.pop(key, None)

    def keys(self) -> list[str]:
        """Live keys, mostly useful for debugging and tests."""
        return [k for k in list(self._records) if self._live(k) is not None]

    def _live(self, key: str) -> StoredRecord | None:
        record = self._records.get(key)
        if record is None:
            return None
        if record.is_expired(self.now()):
            del self._records[key]
            return None
        return record

    def _write(
        self, key: str, value: dict[str, Any], version: int, ttl_seconds: int | None
    ) -> StoredRecord:
        now = self.now()
        record = StoredRecord(
            key=key,
            value=value,
            version=version,
            updated_at=now,
            expires_at=expiry_from_ttl(now, ttl_seconds),
        )
        self._records[key] = record
        return record.model_copy(deep=True)
