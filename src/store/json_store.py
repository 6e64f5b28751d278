# src/store/json_store.py - v1
"""JSON file-based state store (default STORE_BACKEND=json).

Stores each record as an individual JSON file under STORE_ROOT so that
separate CLI invocations share batch state. The version check and the write
are not atomic across processes; two processes racing on the same key can
still lose an update.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from transbatch.store.base_state_store import BaseStateStore, VersionConflictError
from transbatch.store.models import StoredRecord, expiry_from_ttl

logger = logging.getLogger(__name__)


class JsonStateStore(BaseStateStore):
    """File-based state store using one JSON file per key."""

    def __init__(
        self, root: Path | str, clock: Callable[[], datetime] | None = None
    ) -> None:
        super().__init__(clock)
        self._root = Path(root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)

    async def get(self, key: str) -> StoredRecord | None:
        return self._read(key)

    async def put(
        self, key: str, value: dict[str, Any], ttl_seconds: int | None = None
    ) -> StoredRecord:
        current = self._read(key)
        return self._write(key, value, (current.version if current else 0) + 1, ttl_seconds)

    async def compare_and_set(
        self,
        key: str,
        value: dict[str, Any],
        expected_version: int | None,
        ttl_seconds: int | None = None,
    ) -> StoredRecord:
        current = self._read(key)
        actual = current.version if current else None
        if actual != expected_version:
            raise VersionConflictError(key, expected_version, actual)
        return self._write(key, value, (actual or 0) + 1, ttl_seconds)

    async def delete(self, key: str) -> None:
        path = self._entry_path(key)
        if path.exists():
            path.unlink()

    def _read(self, key: str) -> StoredRecord | None:
        path = self._entry_path(key)
        if not path.exists():
            return None
        try:
            record = StoredRecord(**json.loads(path.read_text(encoding="utf-8")))
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning("Failed to read state record %s: %s", key, e)
            return None
        if record.is_expired(self.now()):
            path.unlink(missing_ok=True)
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
        path = self._entry_path(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(record.model_dump_json(indent=2), encoding="utf-8")
        tmp.replace(path)
        return record

    def _entry_path(self, key: str) -> Path:
        """Return file path for a state key."""
        safe_key = key.replace("/", "_").replace("\\", "_")
        return self._root / f"{safe_key}.json"
