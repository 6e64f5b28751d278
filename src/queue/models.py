# src/queue/models.py - v1
"""Task queue models: QueueTask, QueueState, QueueStats."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

MIN_PRIORITY = 1
MAX_PRIORITY = 10
DEFAULT_PRIORITY = 5


class QueueTaskStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class QueueTask(BaseModel):
    """A unit of admitted, priority-ordered work. Owned by TaskQueue."""

    task_id: str
    type: str
    priority: int = DEFAULT_PRIORITY
    status: QueueTaskStatus = QueueTaskStatus.QUEUED
    payload: dict[str, Any] = Field(default_factory=dict)
    retry_count: int = 0
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    failed_at: datetime | None = None
    duration_seconds: float | None = None
    result: Any = None
    error_message: str | None = None


class QueueState(BaseModel):
    """Serializable snapshot of a whole queue."""

    queued: list[QueueTask] = Field(default_factory=list)
    active: list[QueueTask] = Field(default_factory=list)
    completed: list[QueueTask] = Field(default_factory=list)
    failed: list[QueueTask] = Field(default_factory=list)


class QueueStats(BaseModel):
    """Aggregated queue statistics."""

    queued: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0
    max_concurrent: int = 0
    avg_wait_seconds: float = 0.0
    avg_processing_seconds: float = 0.0
    success_rate: float = 0.0
    by_priority: dict[int, int] = Field(default_factory=dict)
    by_type: dict[str, int] = Field(default_factory=dict)
