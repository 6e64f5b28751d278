# src/batch/models.py - v2
"""Batch processing models: Batch, FileTask, resume record and operation results.

Counts are never stored independently: they are computed from the file
list, so processed == completed + failed holds by construction. They are
still serialized with the record for external inspection.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, computed_field


class BatchStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class FileStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    RETRYING = "retrying"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ErrorKind(str, Enum):
    """Retry classification of a file-level failure."""

    VALIDATION = "validation"
    TRANSIENT = "transient"
    UNCLASSIFIED = "unclassified"


TERMINAL_BATCH_STATUSES = frozenset({BatchStatus.COMPLETED, BatchStatus.CANCELLED})
TERMINAL_FILE_STATUSES = frozenset(
    {FileStatus.COMPLETED, FileStatus.FAILED, FileStatus.CANCELLED}
)
ELIGIBLE_FILE_STATUSES = frozenset({FileStatus.PENDING, FileStatus.RETRYING})


class FileTask(BaseModel):
    """One file's translation progress within a batch."""

    index: int
    source_url: str
    file_id: str
    file_name: str
    file_type: str
    status: FileStatus = FileStatus.PENDING
    retry_count: int = 0
    error_message: str | None = None
    error_kind: ErrorKind | None = None
    job_id: str | None = None
    task_id: str | None = None
    target_file_url: str | None = None
    completed_jobs: int = 0
    total_jobs: int = 0
    start_time: datetime | None = None
    completed_time: datetime | None = None
    duration_seconds: float | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_FILE_STATUSES

    def matches(self, correlation_id: str) -> bool:
        return correlation_id in (self.task_id, self.job_id)


class InvalidFile(BaseModel):
    """An input URL rejected at batch creation. Never retried."""

    index: int
    source_url: str
    error: str


class Batch(BaseModel):
    """A named group of file translations sharing language and dictionary."""

    batch_id: str
    name: str
    target_lang: str
    dict_name: str | None = None
    status: BatchStatus = BatchStatus.PENDING
    files: list[FileTask] = Field(default_factory=list)
    errors: list[InvalidFile] = Field(default_factory=list)
    created_at: datetime
    start_time: datetime | None = None
    last_updated: datetime
    paused_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancel_reason: str | None = None
    total_duration_seconds: float | None = None

    # --- Derived counts ---

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_files(self) -> int:
        return len(self.files) + len(self.errors)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def valid_files(self) -> int:
        return len(self.files)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def invalid_files(self) -> int:
        return len(self.errors)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def completed_files(self) -> int:
        return self._count(FileStatus.COMPLETED)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def failed_files(self) -> int:
        return self._count(FileStatus.FAILED)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def processed_files(self) -> int:
        return self.completed_files + self.failed_files

    @computed_field  # type: ignore[prop-decorator]
    @property
    def retrying_files(self) -> int:
        return self._count(FileStatus.RETRYING)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def pending_files(self) -> int:
        return self._count(FileStatus.PENDING)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def cancelled_files(self) -> int:
        return self._count(FileStatus.CANCELLED)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def progress_percent(self) -> float:
        if not self.files:
            return 0.0
        return round(100.0 * self.processed_files / len(self.files), 1)

    # --- Lookups ---

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_BATCH_STATUSES

    def file_by_index(self, index: int) -> FileTask | None:
        return next((f for f in self.files if f.index == index), None)

    def file_by_correlation(self, correlation_id: str) -> FileTask | None:
        return next((f for f in self.files if f.matches(correlation_id)), None)

    def active_file(self) -> FileTask | None:
        """The file currently being driven job by job, if any."""
        return next(
            (f for f in self.files if f.status == FileStatus.PROCESSING), None
        )

    def next_eligible_file(self) -> FileTask | None:
        """First pending or retrying file in input order."""
        eligible = [f for f in self.files if f.status in ELIGIBLE_FILE_STATUSES]
        return min(eligible, key=lambda f: f.index) if eligible else None

    def has_unfinished_files(self) -> bool:
        return any(not f.is_terminal for f in self.files)

    def _count(self, status: FileStatus) -> int:
        return sum(1 for f in self.files if f.status == status)


class ResumeRecord(BaseModel):
    """Pause/resume bookkeeping kept next to the batch record."""

    batch_id: str
    processed_files: int = 0
    completed_files: int = 0
    failed_files: int = 0
    resume_count: int = 0
    paused_at: datetime | None = None
    resumed_at: datetime | None = None


# === Operation results ===


class OperationResult(BaseModel):
    """Structured outcome of every public operation."""

    status: str
    message: str = ""
    batch_id: str | None = None


class FileSummary(BaseModel):
    index: int
    file_name: str
    source_url: str
    target_file_url: str | None = None
    status: FileStatus
    retry_count: int = 0
    error_message: str | None = None

    @classmethod
    def of(cls, task: FileTask) -> FileSummary:
        return cls(
            index=task.index,
            file_name=task.file_name,
            source_url=task.source_url,
            target_file_url=task.target_file_url,
            status=task.status,
            retry_count=task.retry_count,
            error_message=task.error_message,
        )


class CreateBatchResult(OperationResult):
    total_files: int = 0
    valid_files: int = 0
    invalid_files: int = 0
    errors: list[InvalidFile] = Field(default_factory=list)


class TransitionResult(OperationResult):
    batch_status: BatchStatus


class ProcessResult(OperationResult):
    """Outcome of one advance step on a single file."""

    file: FileSummary | None = None
    completed_jobs: int = 0
    total_jobs: int = 0
    progress_percent: float = 0.0


class CompletionResult(OperationResult):
    completed_files: int = 0
    failed_files: int = 0
    cancelled_files: int = 0
    total_duration_seconds: float | None = None
    completed_file_list: list[FileSummary] = Field(default_factory=list)


class BatchStatusResult(OperationResult):
    batch: Batch
    resume: ResumeRecord | None = None


class HealthIssue(BaseModel):
    code: Literal["stale", "high_error_rate", "retry_storm"]
    message: str


class HealthReport(OperationResult):
    """status is the health verdict: healthy, warning or unhealthy."""

    issues: list[HealthIssue] = Field(default_factory=list)
    checked_at: datetime | None = None

    def has_issue(self, code: str) -> bool:
        return any(i.code == code for i in self.issues)


class RecoveryAction(BaseModel):
    action: Literal["requeue_stale", "requeue_failed"]
    file_index: int
    detail: str = ""


class RecoveryResult(OperationResult):
    actions: list[RecoveryAction] = Field(default_factory=list)


class RetryError(BaseModel):
    index: int
    error: str


class RetryResult(OperationResult):
    requeued: list[int] = Field(default_factory=list)
    errors: list[RetryError] = Field(default_factory=list)
