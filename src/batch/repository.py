# src/batch/repository.py - v1
"""Batch persistence on top of the state store.

Keys:
    batch_{batch_id}         the Batch record
    batch_resume_{batch_id}  the ResumeRecord
"""

from __future__ import annotations

import logging

from transbatch.batch.errors import BatchNotFoundError, ConcurrentModificationError
from transbatch.batch.models import Batch, ResumeRecord
from transbatch.store.base_state_store import BaseStateStore, VersionConflictError

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 21_600


def batch_key(batch_id: str) -> str:
    return f"batch_{batch_id}"


def resume_key(batch_id: str) -> str:
    return f"batch_resume_{batch_id}"


class BatchRepository:
    """Versioned load/save of Batch records."""

    def __init__(
        self, store: BaseStateStore, ttl_seconds: int = DEFAULT_TTL_SECONDS
    ) -> None:
        self._store = store
        self._ttl = ttl_seconds

    async def load(self, batch_id: str) -> tuple[Batch, int]:
        """Return (batch, version).

        Raises:
            BatchNotFoundError: If the record is missing or expired.
        """
        record = await self._store.get(batch_key(batch_id))
        if record is None:
            raise BatchNotFoundError(batch_id)
        return Batch(**record.value), record.version

    async def create(self, batch: Batch) -> int:
        return await self.save(batch, expected_version=None)

    async def save(self, batch: Batch, expected_version: int | None) -> int:
        """Write batch back if nobody else did in between; returns new version.

        Raises:
            ConcurrentModificationError: On a version mismatch.
        """
        try:
            record = await self._store.compare_and_set(
                batch_key(batch.batch_id),
                batch.model_dump(mode="json"),
                expected_version,
                ttl_seconds=self._ttl,
            )
        except VersionConflictError as e:
            logger.warning("Lost update on batch %s: %s", batch.batch_id, e)
            raise ConcurrentModificationError(batch.batch_id) from e
        return record.version

    async def load_resume(self, batch_id: str) -> ResumeRecord | None:
        value = await self._store.get_value(resume_key(batch_id))
        return None if value is None else ResumeRecord(**value)

    async def save_resume(self, record: ResumeRecord) -> None:
        await self._store.put(
            resume_key(record.batch_id),
            record.model_dump(mode="json"),
            ttl_seconds=self._ttl,
        )
