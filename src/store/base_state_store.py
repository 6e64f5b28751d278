# src/store/base_state_store.py - v1
"""Abstract state store interface.

Every batch and queue mutation is a read-modify-write of a whole record.
Stores expose the record version so writers can detect lost updates via
compare_and_set instead of silently overwriting a concurrent change.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable

from transbatch.store.models import StoredRecord


class VersionConflictError(Exception):
    """Raised when compare_and_set finds a different version than expected."""

    def __init__(self, key: str, expected: int | None, actual: int | None) -> None:
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Version conflict on {key!r}: expected {expected}, found {actual}"
        )


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BaseStateStore(ABC):
    """Unified interface for TTL-bounded key/value state backends."""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or utc_now

    def now(self) -> datetime:
        return self._clock()

    @abstractmethod
    async def get(self, key: str) -> StoredRecord | None:
        """Return the live record for key, or None if missing or expired."""

    @abstractmethod
    async def put(
        self, key: str, value: dict[str, Any], ttl_seconds: int | None = None
    ) -> StoredRecord:
        """Unconditionally write value, bumping the version."""

    @abstractmethod
    async def compare_and_set(
        self,
        key: str,
        value: dict[str, Any],
        expected_version: int | None,
        ttl_seconds: int | None = None,
    ) -> StoredRecord:
        """Write value only if the stored version equals expected_version.

        ``expected_version=None`` means the key must not exist yet.

        Raises:
            VersionConflictError: If the stored version differs.
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a record (no-op when missing)."""

    async def get_value(self, key: str) -> dict[str, Any] | None:
        """Convenience accessor returning only the payload."""
        record = await self.get(key)
        return None if record is None else record.value
