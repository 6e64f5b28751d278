# src/queue/task_queue.py - v2
"""Priority-ordered task queue with an admission-control ceiling.

The queue never runs anything itself. max_concurrent caps how many tasks
may be handed out (dequeued) and not yet reported back through complete()
or fail(); callers poll dequeue() and get None while the ceiling is hit.

Ordering: higher priority first; among equal priorities, first in first out.
A failed task that is retried drops one priority level.
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable

from transbatch.queue.models import (
    DEFAULT_PRIORITY,
    MAX_PRIORITY,
    MIN_PRIORITY,
    QueueState,
    QueueStats,
    QueueTask,
    QueueTaskStatus,
)

if TYPE_CHECKING:
    from transbatch.config.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT = 3
DEFAULT_MAX_RETRY_ATTEMPTS = 3


class TaskNotFoundError(KeyError):
    """Raised when a task id is not in the active set."""


class DuplicateTaskError(ValueError):
    """Raised when enqueue() is given the id of a queued or active task."""


def clamp_priority(priority: int) -> int:
    return max(MIN_PRIORITY, min(MAX_PRIORITY, int(priority)))


class TaskQueue:
    """In-memory queue; persist it with QueueRepository."""

    def __init__(
        self,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        max_retry_attempts: int = DEFAULT_MAX_RETRY_ATTEMPTS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self.max_concurrent = max_concurrent
        self.max_retry_attempts = max_retry_attempts
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._queued: list[QueueTask] = []
        self._active: dict[str, QueueTask] = {}
        self._completed: list[QueueTask] = []
        self._failed: list[QueueTask] = []

    @classmethod
    def from_settings(
        cls, settings: Settings, clock: Callable[[], datetime] | None = None
    ) -> TaskQueue:
        return cls(
            max_concurrent=settings.queue_max_concurrent,
            max_retry_attempts=settings.queue_max_retry_attempts,
            clock=clock,
        )

    def __len__(self) -> int:
        return len(self._queued)

    # === Admission ===

    def enqueue(
        self,
        task_type: str,
        payload: dict[str, Any] | None = None,
        priority: int = DEFAULT_PRIORITY,
        task_id: str | None = None,
    ) -> QueueTask:
        """Add a task, clamping priority into [1, 10].

        Raises:
            DuplicateTaskError: If task_id is already queued or active.
        """
        if task_id is not None and self._is_pending(task_id):
            raise DuplicateTaskError(f"Task {task_id} is already queued or active")
        task = QueueTask(
            task_id=task_id or uuid.uuid4().hex,
            type=task_type,
            priority=clamp_priority(priority),
            payload=payload or {},
            created_at=self._clock(),
        )
        self._insert(task)
        logger.debug(
            "Enqueued task %s (type=%s, priority=%d, position=%d)",
            task.task_id, task.type, task.priority, self._queued.index(task),
        )
        return task

    def dequeue(self) -> QueueTask | None:
        """Hand out the head task, or None when empty or at the ceiling."""
        if not self._queued or len(self._active) >= self.max_concurrent:
            return None
        task = self._queued.pop(0)
        task.status = QueueTaskStatus.PROCESSING
        task.started_at = self._clock()
        self._active[task.task_id] = task
        return task

    # === Reporting ===

    def complete(self, task_id: str, result: Any = None) -> QueueTask:
        """Move an active task to completed."""
        task = self._pop_active(task_id)
        now = self._clock()
        task.status = QueueTaskStatus.COMPLETED
        task.completed_at = now
        task.result = result
        if task.started_at is not None:
            task.duration_seconds = (now - task.started_at).total_seconds()
        self._completed.append(task)
        return task

    def fail(
        self, task_id: str, error_message: str, should_retry: bool = True
    ) -> QueueTask:
        """Report a failed task; requeue it one priority lower if allowed."""
        task = self._pop_active(task_id)
        task.retry_count += 1
        task.error_message = error_message

        if should_retry and task.retry_count <= self.max_retry_attempts:
            task.priority = max(MIN_PRIORITY, task.priority - 1)
            task.status = QueueTaskStatus.QUEUED
            task.started_at = None
            self._insert(task)
            logger.info(
                "Requeued task %s (attempt %d/%d, priority=%d): %s",
                task_id, task.retry_count, self.max_retry_attempts,
                task.priority, error_message,
            )
            return task

        task.status = QueueTaskStatus.FAILED
        task.failed_at = self._clock()
        self._failed.append(task)
        logger.warning(
            "Task %s failed permanently after %d attempt(s): %s",
            task_id, task.retry_count, error_message,
        )
        return task

    # === Introspection ===

    def get(self, task_id: str) -> QueueTask | None:
        for task in self._all_tasks():
            if task.task_id == task_id:
                return task
        return None

    @property
    def active_count(self) -> int:
        return len(self._active)

    def stats(self) -> QueueStats:
        """Counts, timings, success rate and histograms."""
        waits = [
            (t.started_at - t.created_at).total_seconds()
            for t in self._completed
            if t.started_at is not None
        ]
        durations = [
            t.duration_seconds for t in self._completed if t.duration_seconds is not None
        ]
        finished = len(self._completed) + len(self._failed)
        all_tasks = list(self._all_tasks())

        return QueueStats(
            queued=len(self._queued),
            processing=len(self._active),
            completed=len(self._completed),
            failed=len(self._failed),
            max_concurrent=self.max_concurrent,
            avg_wait_seconds=sum(waits) / len(waits) if waits else 0.0,
            avg_processing_seconds=sum(durations) / len(durations) if durations else 0.0,
            success_rate=len(self._completed) / finished if finished else 0.0,
            by_priority=dict(sorted(Counter(t.priority for t in all_tasks).items())),
            by_type=dict(Counter(t.type for t in all_tasks)),
        )

    def clear_finished(self) -> int:
        """Forget completed and failed tasks. Returns how many were dropped."""
        dropped = len(self._completed) + len(self._failed)
        self._completed.clear()
        self._failed.clear()
        return dropped

    # === Persistence ===

    def snapshot(self) -> QueueState:
        return QueueState(
            queued=[t.model_copy() for t in self._queued],
            active=[t.model_copy() for t in self._active.values()],
            completed=[t.model_copy() for t in self._completed],
            failed=[t.model_copy() for t in self._failed],
        )

    @classmethod
    def restore(
        cls,
        state: QueueState,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        max_retry_attempts: int = DEFAULT_MAX_RETRY_ATTEMPTS,
        clock: Callable[[], datetime] | None = None,
    ) -> TaskQueue:
        queue = cls(max_concurrent, max_retry_attempts, clock)
        queue._queued = list(state.queued)
        queue._active = {t.task_id: t for t in state.active}
        queue._completed = list(state.completed)
        queue._failed = list(state.failed)
        return queue

    # === Internals ===

    def _insert(self, task: QueueTask) -> None:
        """Insert before the first task with strictly lower priority."""
        for position, queued in enumerate(self._queued):
            if queued.priority < task.priority:
                self._queued.insert(position, task)
                return
        self._queued.append(task)

    def _is_pending(self, task_id: str) -> bool:
        return task_id in self._active or any(
            t.task_id == task_id for t in self._queued
        )

    def _pop_active(self, task_id: str) -> QueueTask:
        try:
            return self._active.pop(task_id)
        except KeyError:
            raise TaskNotFoundError(task_id) from None

    def _all_tasks(self):
        yield from self._queued
        yield from self._active.values()
        yield from self._completed
        yield from self._failed
