# src/queue/repository.py - v2
"""Persist TaskQueue snapshots in the state store.

load() returns the queue together with the record version; save() writes
back with compare-and-swap so a concurrent writer is detected instead of
silently overwritten.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from transbatch.queue.models import QueueState
from transbatch.queue.task_queue import (
    DEFAULT_MAX_CONCURRENT,
    DEFAULT_MAX_RETRY_ATTEMPTS,
    TaskQueue,
)
from transbatch.store.base_state_store import BaseStateStore

if TYPE_CHECKING:
    from transbatch.config.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_NAME = "default"


def queue_key(name: str) -> str:
    return f"task_queue_{name}"


class QueueRepository:
    """Load/save a named TaskQueue."""

    def __init__(
        self,
        store: BaseStateStore,
        ttl_seconds: int,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        max_retry_attempts: int = DEFAULT_MAX_RETRY_ATTEMPTS,
    ) -> None:
        self._store = store
        self._ttl = ttl_seconds
        self._max_concurrent = max_concurrent
        self._max_retry_attempts = max_retry_attempts

    @classmethod
    def from_settings(cls, store: BaseStateStore, settings: Settings) -> QueueRepository:
        return cls(
            store,
            ttl_seconds=settings.store_ttl_seconds,
            max_concurrent=settings.queue_max_concurrent,
            max_retry_attempts=settings.queue_max_retry_attempts,
        )

    async def load(self, name: str = DEFAULT_QUEUE_NAME) -> tuple[TaskQueue, int | None]:
        """Return (queue, version); a missing record yields an empty queue and None."""
        record = await self._store.get(queue_key(name))
        if record is None:
            return TaskQueue(self._max_concurrent, self._max_retry_attempts), None
        queue = TaskQueue.restore(
            QueueState(**record.value),
            max_concurrent=self._max_concurrent,
            max_retry_attempts=self._max_retry_attempts,
        )
        return queue, record.version

    async def save(
        self,
        queue: TaskQueue,
        expected_version: int | None,
        name: str = DEFAULT_QUEUE_NAME,
    ) -> int:
        """Write the queue back; returns the new version.

        Raises:
            VersionConflictError: If someone else saved in between.
        """
        record = await self._store.compare_and_set(
            queue_key(name),
            queue.snapshot().model_dump(mode="json"),
            expected_version,
            ttl_seconds=self._ttl,
        )
        logger.debug("Saved queue %s at version %d", name, record.version)
        return record.version
