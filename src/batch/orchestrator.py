# src/batch/orchestrator.py - v2
"""Batch orchestrator: per-batch state machine over file tasks.

    pending -> processing <-> paused
    pending | processing | paused -> cancelled
    processing -> completed

Nothing runs in the background. The caller polls process_next_file(); each
call performs at most one collaborator call (translation setup of the next
eligible file, or one job of the active file) and persists the outcome.

Every mutation is load -> mutate -> compare_and_set. Pure mutations are
re-applied on a version conflict; steps that already called a collaborator
are not, and surface ConcurrentModificationError instead.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Callable, TypeVar

from transbatch.batch.collaborators import (
    BaseFileResolver,
    BaseJobProcessor,
    BaseTranslationSetup,
    FileOutcome,
    FileResolutionError,
    JobProgress,
    SetupResult,
)
from transbatch.batch.errors import (
    BatchValidationError,
    CollaboratorMissingError,
    ConcurrentModificationError,
    InvalidTransitionError,
)
from transbatch.batch.health import HealthThresholds, evaluate_health, is_stale
from transbatch.batch.models import (
    Batch,
    BatchStatus,
    BatchStatusResult,
    CompletionResult,
    CreateBatchResult,
    ErrorKind,
    FileStatus,
    FileSummary,
    FileTask,
    HealthReport,
    InvalidFile,
    ProcessResult,
    RecoveryAction,
    RecoveryResult,
    ResumeRecord,
    RetryError,
    RetryResult,
    TransitionResult,
)
from transbatch.batch.repository import DEFAULT_TTL_SECONDS, BatchRepository
from transbatch.batch.retry_policy import RetryPolicy, resolve_error_kind
from transbatch.logging.context import set_batch_context, set_file_context
from transbatch.store.base_state_store import BaseStateStore

if TYPE_CHECKING:
    from transbatch.config.settings import Settings

logger = logging.getLogger(__name__)

R = TypeVar("R")
Mutation = Callable[[Batch, datetime], "tuple[R, bool]"]

MAX_CAS_ATTEMPTS = 3


@dataclass(frozen=True)
class OrchestratorConfig:
    """Tunables of the orchestrator (mirrors the relevant Settings fields)."""

    ttl_seconds: int = DEFAULT_TTL_SECONDS
    max_retry_attempts: int = 3
    stale_threshold_minutes: int = 30
    high_error_rate: float = 0.5
    high_error_min_processed: int = 3
    retry_storm_threshold: int = 3
    auto_recovery_max_failed: int = 3

    @classmethod
    def from_settings(cls, settings: Settings) -> OrchestratorConfig:
        return cls(
            ttl_seconds=settings.store_ttl_seconds,
            max_retry_attempts=settings.max_retry_attempts,
            stale_threshold_minutes=settings.stale_threshold_minutes,
            high_error_rate=settings.high_error_rate,
            high_error_min_processed=settings.high_error_min_processed,
            retry_storm_threshold=settings.retry_storm_threshold,
            auto_recovery_max_failed=settings.auto_recovery_max_failed,
        )

    @property
    def thresholds(self) -> HealthThresholds:
        return HealthThresholds(
            stale_after=timedelta(minutes=self.stale_threshold_minutes),
            high_error_rate=self.high_error_rate,
            high_error_min_processed=self.high_error_min_processed,
            retry_storm=self.retry_storm_threshold,
        )


class BatchOrchestrator:
    """Drives batches of file translations through their lifecycle.

    Args:
        store: State store holding batch and resume records.
        resolver: Validates and resolves input URLs (needed by create_batch).
        setup: Prepares a single file for translation.
        processor: Advances the active file one job at a time. Without it,
            the caller reports file outcomes through on_file_completed().
        config: Thresholds and limits.
        clock: Time source; defaults to the store's clock.
    """

    def __init__(
        self,
        store: BaseStateStore,
        resolver: BaseFileResolver | None = None,
        setup: BaseTranslationSetup | None = None,
        processor: BaseJobProcessor | None = None,
        config: OrchestratorConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config or OrchestratorConfig()
        self._repo = BatchRepository(store, ttl_seconds=self.config.ttl_seconds)
        self._resolver = resolver
        self._setup = setup
        self._processor = processor
        self._policy = RetryPolicy(self.config.max_retry_attempts)
        self._clock = clock or store.now

    # === Creation ===

    async def create_batch(
        self,
        urls: list[str],
        target_lang: str,
        dict_name: str | None = None,
        name: str | None = None,
    ) -> CreateBatchResult:
        """Validate urls and store a new pending batch.

        Raises:
            BatchValidationError: If no URL is usable.
            CollaboratorMissingError: If no resolver is configured.
        """
        resolver = self._require(self._resolver, "file resolver")
        if not urls:
            raise BatchValidationError("No file URLs given")
        if not target_lang:
            raise BatchValidationError("Target language is required")

        batch_id = uuid.uuid4().hex
        set_batch_context(batch_id, "create_batch")
        now = self._clock()

        files: list[FileTask] = []
        errors: list[InvalidFile] = []
        for index, url in enumerate(urls):
            try:
                if not await resolver.validate(url):
                    raise FileResolutionError(f"Invalid URL: {url}")
                resolved = await resolver.resolve(url)
            except FileResolutionError as e:
                logger.info("Rejected input %d (%s): %s", index, url, e)
                errors.append(InvalidFile(index=index, source_url=url, error=str(e)))
                continue
            files.append(
                FileTask(
                    index=index,
                    source_url=url,
                    file_id=resolved.file_id,
                    file_name=resolved.file_name,
                    file_type=resolved.file_type,
                )
            )

        if not files:
            raise BatchValidationError(
                f"None of the {len(urls)} URLs could be used: "
                + "; ".join(e.error for e in errors)
            )

        batch = Batch(
            batch_id=batch_id,
            name=name or f"Batch {now:%Y-%m-%d %H:%M}",
            target_lang=target_lang,
            dict_name=dict_name,
            files=files,
            errors=errors,
            created_at=now,
            last_updated=now,
        )
        await self._repo.create(batch)
        logger.info(
            "Created batch %s with %d valid and %d invalid files",
            batch_id, batch.valid_files, batch.invalid_files,
        )
        return CreateBatchResult(
            status="created",
            message=f"Batch created with {batch.valid_files} files",
            batch_id=batch_id,
            total_files=batch.total_files,
            valid_files=batch.valid_files,
            invalid_files=batch.invalid_files,
            errors=errors,
        )

    # === Lifecycle transitions ===

    async def start(self, batch_id: str) -> TransitionResult:
        set_batch_context(batch_id, "start")

        def mutate(batch: Batch, now: datetime) -> tuple[TransitionResult, bool]:
            if batch.status == BatchStatus.PROCESSING:
                return self._transition(batch, "already_running"), False
            if batch.status not in (BatchStatus.PENDING, BatchStatus.PAUSED):
                raise InvalidTransitionError(batch_id, batch.status.value, "start")
            batch.status = BatchStatus.PROCESSING
            batch.start_time = batch.start_time or now
            batch.paused_at = None
            return self._transition(batch, "started"), True

        result, _ = await self._update(batch_id, mutate)
        logger.info("Batch %s: %s", batch_id, result.status)
        return result

    async def pause(self, batch_id: str) -> TransitionResult:
        set_batch_context(batch_id, "pause")

        def mutate(batch: Batch, now: datetime) -> tuple[TransitionResult, bool]:
            if batch.status == BatchStatus.PAUSED:
                return self._transition(batch, "already_paused"), False
            if batch.status != BatchStatus.PROCESSING:
                raise InvalidTransitionError(batch_id, batch.status.value, "pause")
            batch.status = BatchStatus.PAUSED
            batch.paused_at = now
            return self._transition(batch, "paused"), True

        result, batch = await self._update(batch_id, mutate)
        if result.status == "paused":
            record = await self._repo.load_resume(batch_id) or ResumeRecord(
                batch_id=batch_id
            )
            await self._repo.save_resume(
                self._snapshot(record, batch, paused_at=batch.paused_at)
            )
            logger.info(
                "Paused batch %s at %d/%d processed files",
                batch_id, batch.processed_files, batch.valid_files,
            )
        return result

    async def resume(self, batch_id: str) -> TransitionResult:
        set_batch_context(batch_id, "resume")

        def mutate(batch: Batch, now: datetime) -> tuple[TransitionResult, bool]:
            if batch.status != BatchStatus.PAUSED:
                raise InvalidTransitionError(batch_id, batch.status.value, "resume")
            batch.status = BatchStatus.PROCESSING
            batch.paused_at = None
            return self._transition(batch, "resumed"), True

        result, batch = await self._update(batch_id, mutate)
        record = await self._repo.load_resume(batch_id) or ResumeRecord(
            batch_id=batch_id
        )
        record = self._snapshot(record, batch, resumed_at=batch.last_updated)
        record.resume_count += 1
        await self._repo.save_resume(record)
        logger.info("Resumed batch %s (resume #%d)", batch_id, record.resume_count)
        return result

    async def cancel(self, batch_id: str, reason: str | None = None) -> TransitionResult:
        """Cancel every non-terminal file and the batch itself."""
        set_batch_context(batch_id, "cancel")

        def mutate(batch: Batch, now: datetime) -> tuple[TransitionResult, bool]:
            if batch.status == BatchStatus.CANCELLED:
                return self._transition(batch, "already_cancelled"), False
            if batch.status == BatchStatus.COMPLETED:
                raise InvalidTransitionError(batch_id, batch.status.value, "cancel")
            for task in batch.files:
                if not task.is_terminal:
                    task.status = FileStatus.CANCELLED
                    task.completed_time = now
            batch.status = BatchStatus.CANCELLED
            batch.cancelled_at = now
            batch.cancel_reason = reason
            return self._transition(batch, "cancelled"), True

        result, batch = await self._update(batch_id, mutate)
        if result.status == "cancelled":
            logger.info(
                "Cancelled batch %s (%d files cancelled): %s",
                batch_id, batch.cancelled_files, reason or "no reason given",
            )
        return result

    async def complete(self, batch_id: str) -> CompletionResult:
        """Mark the batch completed and list its completed files.

        Raises:
            BatchValidationError: If files are still pending, retrying or
                processing.
        """
        set_batch_context(batch_id, "complete")

        def mutate(batch: Batch, now: datetime) -> tuple[CompletionResult, bool]:
            if batch.status == BatchStatus.COMPLETED:
                return self._completion(batch, "already_completed"), False
            if batch.status != BatchStatus.PROCESSING:
                raise InvalidTransitionError(batch_id, batch.status.value, "complete")
            if batch.has_unfinished_files():
                raise BatchValidationError(
                    f"Batch {batch_id!r} still has unfinished files"
                )
            self._finish(batch, now)
            return self._completion(batch, "completed"), True

        result, _ = await self._update(batch_id, mutate)
        return result

    # === Advancing ===

    async def process_next_file(
        self, batch_id: str
    ) -> ProcessResult | CompletionResult:
        """Advance the batch by one step.

        Returns:
            ProcessResult describing the file touched, or CompletionResult
            once no file is left.

        Raises:
            ConcurrentModificationError: If the batch changed while the
                collaborator was working.
        """
        set_batch_context(batch_id, "process_next_file")
        batch, version = await self._repo.load(batch_id)

        if batch.status != BatchStatus.PROCESSING:
            return ProcessResult(
                status=batch.status.value,
                message=f"Batch is {batch.status.value}; nothing advanced",
                batch_id=batch_id,
                progress_percent=batch.progress_percent,
            )

        now = self._clock()
        active = batch.active_file()
        if active is not None:
            set_file_context(active.index, active.task_id)
            if self._processor is None:
                return self._progress(
                    batch, active, "processing",
                    "Waiting for the file completion callback",
                )
            result = await self._advance_active(batch, active, now)
        else:
            task = batch.next_eligible_file()
            if task is None:
                self._finish(batch, now)
                await self._save(batch, version, now)
                return self._completion(batch, "completed")
            set_file_context(task.index, None)
            result = await self._setup_file(batch, task, now)

        await self._save(batch, version, now)
        return result

    async def on_file_completed(
        self, batch_id: str, correlation_id: str, outcome: FileOutcome
    ) -> ProcessResult | CompletionResult:
        """Record the final outcome of a file reported by the caller."""
        set_batch_context(batch_id, "on_file_completed")
        batch, version = await self._repo.load(batch_id)

        task = batch.file_by_correlation(correlation_id)
        if task is None:
            return ProcessResult(
                status="unknown_file",
                message=f"No file with task or job id {correlation_id!r}",
                batch_id=batch_id,
                progress_percent=batch.progress_percent,
            )
        set_file_context(task.index, task.task_id)
        if task.is_terminal:
            logger.debug("Ignoring outcome for terminal file %d", task.index)
            return self._progress(
                batch, task, "ignored", f"File is already {task.status.value}"
            )

        now = self._clock()
        if outcome.success:
            self._mark_completed(task, now, outcome.target_file_url)
        else:
            message = outcome.error or "File translation failed"
            task.status = FileStatus.FAILED
            task.error_message = message
            task.error_kind = resolve_error_kind(outcome.error_kind, message)
            self._stamp_finished(task, now)
            logger.warning("File %d failed: %s", task.index, message)

        if batch.status == BatchStatus.PROCESSING and not batch.has_unfinished_files():
            self._finish(batch, now)
            await self._save(batch, version, now)
            return self._completion(batch, "completed")

        await self._save(batch, version, now)
        return self._progress(batch, task, task.status.value, "File outcome recorded")

    # === Inspection ===

    async def get_status(self, batch_id: str) -> BatchStatusResult:
        batch, _ = await self._repo.load(batch_id)
        resume = await self._repo.load_resume(batch_id)
        return BatchStatusResult(
            status=batch.status.value,
            message=(
                f"{batch.processed_files}/{batch.valid_files} files processed "
                f"({batch.progress_percent}%)"
            ),
            batch_id=batch_id,
            batch=batch,
            resume=resume,
        )

    async def health_check(self, batch_id: str) -> HealthReport:
        set_batch_context(batch_id, "health_check")
        batch, _ = await self._repo.load(batch_id)
        report = evaluate_health(batch, self._clock(), self.config.thresholds)
        if report.issues:
            logger.warning("Batch %s is %s: %s", batch_id, report.status, report.message)
        return report

    # === Recovery ===

    async def attempt_auto_recovery(self, batch_id: str) -> RecoveryResult:
        """Requeue stuck processing files and a few retryable failed files.

        A completed batch is reopened when failed files are requeued; a
        cancelled batch is never touched.
        """
        set_batch_context(batch_id, "auto_recovery")
        thresholds = self.config.thresholds

        def mutate(batch: Batch, now: datetime) -> tuple[RecoveryResult, bool]:
            if batch.status == BatchStatus.CANCELLED:
                raise InvalidTransitionError(
                    batch_id, batch.status.value, "recover"
                )
            actions: list[RecoveryAction] = []

            if is_stale(batch, now, thresholds):
                for task in batch.files:
                    if (
                        task.status == FileStatus.PROCESSING
                        and task.start_time is not None
                        and now - task.start_time > thresholds.stale_after
                    ):
                        minutes = thresholds.stale_after.total_seconds() / 60
                        task.status = FileStatus.RETRYING
                        task.retry_count += 1
                        task.error_message = (
                            f"Timed out: no progress for over {minutes:.0f} minutes"
                        )
                        task.error_kind = ErrorKind.TRANSIENT
                        actions.append(
                            RecoveryAction(
                                action="requeue_stale",
                                file_index=task.index,
                                detail=task.error_message,
                            )
                        )

            recoverable = [
                task for task in batch.files
                if task.status == FileStatus.FAILED
                and task.error_kind != ErrorKind.VALIDATION
                and task.retry_count < self.config.max_retry_attempts
            ]
            for task in recoverable[: self.config.auto_recovery_max_failed]:
                self._requeue(task)
                actions.append(
                    RecoveryAction(
                        action="requeue_failed",
                        file_index=task.index,
                        detail=f"retry {task.retry_count}/{self.config.max_retry_attempts}",
                    )
                )

            if not actions:
                return RecoveryResult(
                    status="no_recovery_possible",
                    message="Nothing to recover",
                    batch_id=batch_id,
                ), False
            _reopen(batch)
            return RecoveryResult(
                status="recovered",
                message=f"{len(actions)} recovery actions taken",
                batch_id=batch_id,
                actions=actions,
            ), True

        result, _ = await self._update(batch_id, mutate)
        for action in result.actions:
            logger.info(
                "Auto-recovery %s on file %d: %s",
                action.action, action.file_index, action.detail,
            )
        return result

    async def retry_failed_files(
        self, batch_id: str, indices: list[int]
    ) -> RetryResult:
        """Requeue the named failed files; a completed batch is reopened."""
        set_batch_context(batch_id, "retry_failed_files")
        limit = self.config.max_retry_attempts

        def mutate(batch: Batch, now: datetime) -> tuple[RetryResult, bool]:
            if batch.status == BatchStatus.CANCELLED:
                raise InvalidTransitionError(batch_id, batch.status.value, "retry")
            requeued: list[int] = []
            errors: list[RetryError] = []
            for index in dict.fromkeys(indices):
                task = batch.file_by_index(index)
                if task is None:
                    errors.append(RetryError(index=index, error="No such file"))
                elif task.status != FileStatus.FAILED:
                    errors.append(
                        RetryError(index=index, error=f"File is {task.status.value}")
                    )
                elif task.retry_count >= limit:
                    errors.append(
                        RetryError(
                            index=index,
                            error=f"Retry limit reached ({task.retry_count}/{limit})",
                        )
                    )
                else:
                    self._requeue(task)
                    requeued.append(index)

            if requeued:
                _reopen(batch)

            return RetryResult(
                status="requeued" if requeued else "nothing_requeued",
                message=f"{len(requeued)} files requeued, {len(errors)} rejected",
                batch_id=batch_id,
                requeued=requeued,
                errors=errors,
            ), bool(requeued)

        result, _ = await self._update(batch_id, mutate)
        if result.requeued:
            logger.info("Requeued failed files %s", result.requeued)
        return result

    # === Internals: steps ===

    async def _setup_file(
        self, batch: Batch, task: FileTask, now: datetime
    ) -> ProcessResult:
        setup = self._require(self._setup, "translation setup")
        try:
            outcome = await setup.setup(task.source_url, batch.target_lang, batch.dict_name)
        except Exception as e:
            logger.warning("Translation setup raised for file %d: %s", task.index, e)
            outcome = SetupResult(
                error=str(e) or type(e).__name__, error_kind=getattr(e, "kind", None)
            )

        if not outcome.ok:
            message = outcome.error or "Translation setup returned no task id"
            self._apply_failure(
                task, message, resolve_error_kind(outcome.error_kind, message), now
            )
            return self._progress(batch, task, task.status.value, message)

        task.status = FileStatus.PROCESSING
        task.task_id = outcome.task_id
        task.job_id = outcome.job_id
        task.total_jobs = outcome.total_jobs
        task.completed_jobs = 0
        task.target_file_url = outcome.target_file_url
        task.start_time = now
        task.error_message = None
        set_file_context(task.index, task.task_id)
        logger.info(
            "File %d (%s) set up as task %s with %d jobs",
            task.index, task.file_name, task.task_id, task.total_jobs,
        )
        return self._progress(batch, task, "processing", "Translation set up")

    async def _advance_active(
        self, batch: Batch, task: FileTask, now: datetime
    ) -> ProcessResult:
        if not task.task_id:
            self._apply_failure(
                task, "Processing file has no task id", ErrorKind.UNCLASSIFIED, now
            )
            return self._progress(batch, task, task.status.value, task.error_message)

        try:
            progress = await self._processor.advance(task.task_id)
        except Exception as e:
            logger.warning("Job processing raised for file %d: %s", task.index, e)
            progress = JobProgress(
                status="error",
                completed_jobs=task.completed_jobs,
                total_jobs=task.total_jobs,
                error=str(e) or type(e).__name__,
                error_kind=getattr(e, "kind", None),
            )

        task.completed_jobs = progress.completed_jobs
        if progress.total_jobs:
            task.total_jobs = progress.total_jobs

        if progress.status == "complete":
            self._mark_completed(task, now, progress.target_file_url)
            return self._progress(batch, task, "file_completed", "File translated")
        if progress.status == "error":
            message = progress.error or "Job processing failed"
            self._apply_failure(
                task, message, resolve_error_kind(progress.error_kind, message), now
            )
            return self._progress(batch, task, task.status.value, message)
        return self._progress(
            batch, task, "processing",
            f"Job {progress.completed_jobs}/{progress.total_jobs} done",
        )

    # === Internals: file transitions ===

    def _apply_failure(
        self, task: FileTask, message: str, kind: ErrorKind, now: datetime
    ) -> None:
        task.error_message = message
        task.error_kind = kind
        if self._policy.should_retry(kind, task.retry_count):
            task.status = FileStatus.RETRYING
            task.retry_count += 1
            logger.warning(
                "File %d will be retried (%s, retry %d/%d): %s",
                task.index, kind.value, task.retry_count,
                self.config.max_retry_attempts, message,
            )
            return
        task.status = FileStatus.FAILED
        self._stamp_finished(task, now)
        logger.warning(
            "File %d failed permanently (%s): %s", task.index, kind.value, message
        )

    def _mark_completed(
        self, task: FileTask, now: datetime, target_file_url: str | None
    ) -> None:
        task.status = FileStatus.COMPLETED
        task.target_file_url = target_file_url or task.target_file_url
        task.completed_jobs = max(task.completed_jobs, task.total_jobs)
        task.error_message = None
        task.error_kind = None
        self._stamp_finished(task, now)
        logger.info("File %d (%s) completed", task.index, task.file_name)

    @staticmethod
    def _stamp_finished(task: FileTask, now: datetime) -> None:
        task.completed_time = now
        if task.start_time is not None:
            task.duration_seconds = (now - task.start_time).total_seconds()

    @staticmethod
    def _requeue(task: FileTask) -> None:
        task.status = FileStatus.RETRYING
        task.retry_count += 1
        task.completed_time = None
        task.duration_seconds = None

    @staticmethod
    def _finish(batch: Batch, now: datetime) -> None:
        batch.status = BatchStatus.COMPLETED
        batch.completed_at = now
        batch.total_duration_seconds = (
            now - (batch.start_time or batch.created_at)
        ).total_seconds()
        logger.info(
            "Batch %s completed: %d completed, %d failed, %d cancelled",
            batch.batch_id, batch.completed_files, batch.failed_files,
            batch.cancelled_files,
        )

    # === Internals: persistence ===

    async def _update(
        self, batch_id: str, mutate: Mutation, attempts: int = MAX_CAS_ATTEMPTS
    ) -> tuple[R, Batch]:
        """Apply a pure mutation with compare-and-swap, re-reading on conflict."""
        for attempt in range(1, attempts + 1):
            batch, version = await self._repo.load(batch_id)
            now = self._clock()
            result, changed = mutate(batch, now)
            if not changed:
                return result, batch
            try:
                await self._save(batch, version, now)
            except ConcurrentModificationError:
                if attempt == attempts:
                    raise
                logger.info(
                    "Concurrent update on batch %s, re-applying (attempt %d/%d)",
                    batch_id, attempt + 1, attempts,
                )
                continue
            return result, batch
        raise ConcurrentModificationError(batch_id)

    async def _save(self, batch: Batch, version: int, now: datetime) -> None:
        batch.last_updated = now
        await self._repo.save(batch, expected_version=version)

    # === Internals: results ===

    @staticmethod
    def _require(collaborator: R | None, name: str) -> R:
        if collaborator is None:
            raise CollaboratorMissingError(name)
        return collaborator

    @staticmethod
    def _transition(batch: Batch, status: str) -> TransitionResult:
        return TransitionResult(
            status=status,
            message=f"Batch is {batch.status.value}",
            batch_id=batch.batch_id,
            batch_status=batch.status,
        )

    @staticmethod
    def _progress(
        batch: Batch, task: FileTask, status: str, message: str | None
    ) -> ProcessResult:
        return ProcessResult(
            status=status,
            message=message or "",
            batch_id=batch.batch_id,
            file=FileSummary.of(task),
            completed_jobs=task.completed_jobs,
            total_jobs=task.total_jobs,
            progress_percent=batch.progress_percent,
        )

    @staticmethod
    def _completion(batch: Batch, status: str) -> CompletionResult:
        completed = [FileSummary.of(t) for t in batch.files if t.status == FileStatus.COMPLETED]
        return CompletionResult(
            status=status,
            message=(
                f"{batch.completed_files} completed, {batch.failed_files} failed, "
                f"{batch.cancelled_files} cancelled"
            ),
            batch_id=batch.batch_id,
            completed_files=batch.completed_files,
            failed_files=batch.failed_files,
            cancelled_files=batch.cancelled_files,
            total_duration_seconds=batch.total_duration_seconds,
            completed_file_list=completed,
        )

    @staticmethod
    def _snapshot(
        record: ResumeRecord,
        batch: Batch,
        paused_at: datetime | None = None,
        resumed_at: datetime | None = None,
    ) -> ResumeRecord:
        return record.model_copy(
            update={
                "processed_files": batch.processed_files,
                "completed_files": batch.completed_files,
                "failed_files": batch.failed_files,
                "paused_at": paused_at or record.paused_at,
                "resumed_at": resumed_at or record.resumed_at,
            }
        )


def _reopen(batch: Batch) -> None:
    """Put a completed batch back to processing after files were requeued."""
    if batch.status == BatchStatus.COMPLETED:
        batch.status = BatchStatus.PROCESSING
        batch.completed_at = None
        batch.total_duration_seconds = None
