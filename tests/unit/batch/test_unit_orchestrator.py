# tests/unit/batch/test_unit_orchestrator.py - v2
"""Tests for batch/orchestrator.py: lifecycle, retries, recovery and CAS."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from transbatch.batch.collaborators import (
    BaseTranslationSetup,
    FileOutcome,
    JobProgress,
    SetupResult,
)
from transbatch.batch.errors import (
    BatchNotFoundError,
    BatchValidationError,
    CollaboratorMissingError,
    ConcurrentModificationError,
    InvalidTransitionError,
)
from transbatch.batch.models import (
    BatchStatus,
    CompletionResult,
    ErrorKind,
    FileStatus,
)
from transbatch.batch.orchestrator import BatchOrchestrator, OrchestratorConfig


async def _created(orchestrator, urls=("u1", "u2"), **kwargs) -> str:
    result = await orchestrator.create_batch(list(urls), "en", **kwargs)
    return result.batch_id


async def _started(orchestrator, urls=("u1", "u2"), **kwargs) -> str:
    batch_id = await _created(orchestrator, urls, **kwargs)
    await orchestrator.start(batch_id)
    return batch_id


async def _batch(orchestrator, batch_id):
    return (await orchestrator.get_status(batch_id)).batch


async def _drain(orchestrator, batch_id, limit: int = 50):
    """Poll process_next_file until the batch reports completion."""
    for _ in range(limit):
        result = await orchestrator.process_next_file(batch_id)
        batch = await _batch(orchestrator, batch_id)
        assert batch.processed_files == batch.completed_files + batch.failed_files
        assert batch.processed_files <= batch.valid_files
        if isinstance(result, CompletionResult):
            return result
    raise AssertionError("batch did not complete")


class _InterferingSetup(BaseTranslationSetup):
    """Runs a hook (e.g. a competing write) before delegating."""

    def __init__(self, inner, hook) -> None:
        self.inner = inner
        self.hook = hook

    async def setup(self, url, target_lang, dict_name):
        await self.hook()
        return await self.inner.setup(url, target_lang, dict_name)


# === Creation ===


class TestCreateBatch:
    @pytest.mark.asyncio
    async def test_mixed_valid_and_invalid_urls(self, orchestrator):
        result = await orchestrator.create_batch(
            ["validUrl1", "bad", "validUrl2"], "en", dict_name="glossary"
        )
        assert result.status == "created"
        assert result.total_files == 3
        assert result.valid_files == 2
        assert result.invalid_files == 1
        assert result.errors[0].index == 1
        assert result.errors[0].error == "Invalid URL: bad"

        batch = await _batch(orchestrator, result.batch_id)
        assert batch.status == BatchStatus.PENDING
        assert [f.index for f in batch.files] == [0, 2]
        assert batch.dict_name == "glossary"

    @pytest.mark.asyncio
    async def test_resolve_failure_is_recorded(self, orchestrator):
        result = await orchestrator.create_batch(["u1", "missing-doc"], "en")
        assert result.errors[0].error == "File not found: missing-doc"

    @pytest.mark.asyncio
    async def test_default_name(self, orchestrator):
        batch_id = await _created(orchestrator)
        assert (await _batch(orchestrator, batch_id)).name == "Batch 2026-03-02 09:00"

    @pytest.mark.asyncio
    async def test_no_valid_url(self, orchestrator, memory_store):
        with pytest.raises(BatchValidationError):
            await orchestrator.create_batch(["bad1", "bad2"], "en")
        assert memory_store.keys() == []

    @pytest.mark.asyncio
    async def test_empty_inputs(self, orchestrator):
        with pytest.raises(BatchValidationError):
            await orchestrator.create_batch([], "en")
        with pytest.raises(BatchValidationError):
            await orchestrator.create_batch(["u1"], "")

    @pytest.mark.asyncio
    async def test_needs_resolver(self, memory_store):
        with pytest.raises(CollaboratorMissingError):
            await BatchOrchestrator(memory_store).create_batch(["u1"], "en")

    @pytest.mark.asyncio
    async def test_unknown_batch(self, orchestrator):
        with pytest.raises(BatchNotFoundError):
            await orchestrator.get_status("ghost")


# === Lifecycle ===


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, orchestrator):
        batch_id = await _created(orchestrator)
        assert (await orchestrator.start(batch_id)).status == "started"
        again = await orchestrator.start(batch_id)
        assert again.status == "already_running"
        assert again.batch_status == BatchStatus.PROCESSING

    @pytest.mark.asyncio
    async def test_pause_then_resume(self, orchestrator):
        batch_id = await _started(orchestrator)
        await orchestrator.process_next_file(batch_id)

        paused = await orchestrator.pause(batch_id)
        assert paused.status == "paused"
        assert (await orchestrator.pause(batch_id)).status == "already_paused"
        status = await orchestrator.get_status(batch_id)
        assert status.resume.paused_at is not None

        waiting = await orchestrator.process_next_file(batch_id)
        assert waiting.status == "paused"

        resumed = await orchestrator.resume(batch_id)
        assert resumed.status == "resumed"
        assert resumed.batch_status == BatchStatus.PROCESSING
        status = await orchestrator.get_status(batch_id)
        assert status.resume.resume_count == 1
        assert status.resume.resumed_at is not None

        await orchestrator.pause(batch_id)
        await orchestrator.resume(batch_id)
        assert (await orchestrator.get_status(batch_id)).resume.resume_count == 2

    @pytest.mark.asyncio
    async def test_pause_requires_processing(self, orchestrator):
        batch_id = await _created(orchestrator)
        with pytest.raises(InvalidTransitionError):
            await orchestrator.pause(batch_id)
        with pytest.raises(InvalidTransitionError):
            await orchestrator.resume(batch_id)

    @pytest.mark.asyncio
    async def test_cancel(self, orchestrator):
        batch_id = await _started(orchestrator)
        await orchestrator.process_next_file(batch_id)

        result = await orchestrator.cancel(batch_id, "no longer needed")
        assert result.status == "cancelled"
        batch = await _batch(orchestrator, batch_id)
        assert all(f.status == FileStatus.CANCELLED for f in batch.files)
        assert batch.cancel_reason == "no longer needed"
        assert batch.cancelled_files == 2

        assert (await orchestrator.cancel(batch_id)).status == "already_cancelled"
        assert (await orchestrator.process_next_file(batch_id)).status == "cancelled"
        with pytest.raises(InvalidTransitionError):
            await orchestrator.start(batch_id)

    @pytest.mark.asyncio
    async def test_cancel_pending_batch(self, orchestrator):
        batch_id = await _created(orchestrator)
        assert (await orchestrator.cancel(batch_id)).status == "cancelled"

    @pytest.mark.asyncio
    async def test_cannot_cancel_completed(self, orchestrator):
        batch_id = await _started(orchestrator, urls=("u1",))
        await _drain(orchestrator, batch_id)
        with pytest.raises(InvalidTransitionError):
            await orchestrator.cancel(batch_id)

    @pytest.mark.asyncio
    async def test_complete_rejects_unfinished(self, orchestrator):
        batch_id = await _created(orchestrator)
        with pytest.raises(InvalidTransitionError):
            await orchestrator.complete(batch_id)
        await orchestrator.start(batch_id)
        with pytest.raises(BatchValidationError):
            await orchestrator.complete(batch_id)

    @pytest.mark.asyncio
    async def test_complete_after_outcomes(self, memory_store, resolver, setup_collaborator, clock):
        orchestrator = BatchOrchestrator(
            memory_store, resolver=resolver, setup=setup_collaborator, clock=clock
        )
        batch_id = await _started(orchestrator, urls=("u1",))
        await orchestrator.process_next_file(batch_id)
        await orchestrator.pause(batch_id)
        await orchestrator.resume(batch_id)
        result = await orchestrator.on_file_completed(
            batch_id, "task-u1", FileOutcome(success=True)
        )
        assert result.status == "completed"
        assert (await orchestrator.complete(batch_id)).status == "already_completed"


# === Advancing ===


class TestProcessNextFile:
    @pytest.mark.asyncio
    async def test_full_run(self, orchestrator, setup_collaborator, clock):
        batch_id = await _started(orchestrator)

        first = await orchestrator.process_next_file(batch_id)
        assert first.status == "processing"
        assert first.file.index == 0
        assert first.total_jobs == 2

        clock.advance(minutes=1)
        second = await orchestrator.process_next_file(batch_id)
        assert second.status == "processing"
        assert second.completed_jobs == 1

        clock.advance(minutes=1)
        third = await orchestrator.process_next_file(batch_id)
        assert third.status == "file_completed"
        assert third.file.target_file_url == "task-u1.out"
        assert third.progress_percent == 50.0

        result = await _drain(orchestrator, batch_id)
        assert result.status == "completed"
        assert result.completed_files == 2
        assert len(result.completed_file_list) == result.completed_files
        assert result.total_duration_seconds > 0
        assert setup_collaborator.calls == ["u1", "u2"]

        batch = await _batch(orchestrator, batch_id)
        assert batch.status == BatchStatus.COMPLETED
        assert batch.files[0].duration_seconds == 120.0

    @pytest.mark.asyncio
    async def test_pending_batch_is_not_advanced(self, orchestrator, setup_collaborator):
        batch_id = await _created(orchestrator)
        result = await orchestrator.process_next_file(batch_id)
        assert result.status == "pending"
        assert setup_collaborator.calls == []

    @pytest.mark.asyncio
    async def test_records_expire(self, orchestrator, clock):
        batch_id = await _started(orchestrator)
        clock.advance(hours=7)
        with pytest.raises(BatchNotFoundError):
            await orchestrator.process_next_file(batch_id)

    @pytest.mark.asyncio
    async def test_needs_setup(self, memory_store, resolver, clock):
        orchestrator = BatchOrchestrator(memory_store, resolver=resolver, clock=clock)
        batch_id = await _started(orchestrator)
        with pytest.raises(CollaboratorMissingError):
            await orchestrator.process_next_file(batch_id)

    @pytest.mark.asyncio
    async def test_without_processor_waits_for_callback(
        self, memory_store, resolver, setup_collaborator, clock
    ):
        orchestrator = BatchOrchestrator(
            memory_store, resolver=resolver, setup=setup_collaborator, clock=clock
        )
        batch_id = await _started(orchestrator, urls=("u1",))
        await orchestrator.process_next_file(batch_id)

        waiting = await orchestrator.process_next_file(batch_id)
        assert waiting.status == "processing"
        assert "callback" in waiting.message

        done = await orchestrator.on_file_completed(
            batch_id, "job-u1", FileOutcome(success=True, target_file_url="out/u1")
        )
        assert done.status == "completed"
        assert done.completed_file_list[0].target_file_url == "out/u1"


class TestRetryPolicyInOrchestrator:
    @pytest.mark.asyncio
    async def test_transient_setup_error_is_retried(self, orchestrator, setup_collaborator):
        setup_collaborator.script("u1", SetupResult(error="タイムアウトしました"))
        batch_id = await _started(orchestrator, urls=("u1",))

        result = await orchestrator.process_next_file(batch_id)
        assert result.status == "retrying"
        assert result.file.retry_count == 1

        batch = await _batch(orchestrator, batch_id)
        assert batch.files[0].error_kind == ErrorKind.TRANSIENT
        assert batch.retrying_files == 1

        final = await _drain(orchestrator, batch_id)
        assert final.completed_files == 1
        assert setup_collaborator.calls == ["u1", "u1"]

    @pytest.mark.asyncio
    async def test_validation_error_fails_immediately(self, orchestrator, setup_collaborator):
        setup_collaborator.script("u1", SetupResult(error="サポートされていない形式です"))
        batch_id = await _started(orchestrator)

        result = await orchestrator.process_next_file(batch_id)
        assert result.status == "failed"
        assert result.file.retry_count == 0

        final = await _drain(orchestrator, batch_id)
        assert final.failed_files == 1
        assert final.completed_files == 1
        assert [f.index for f in final.completed_file_list] == [1]

    @pytest.mark.asyncio
    async def test_structured_kind_wins_over_message(self, orchestrator, setup_collaborator):
        setup_collaborator.script(
            "u1", SetupResult(error="timeout", error_kind=ErrorKind.VALIDATION)
        )
        batch_id = await _started(orchestrator, urls=("u1",))
        assert (await orchestrator.process_next_file(batch_id)).status == "failed"

    @pytest.mark.asyncio
    async def test_transient_gives_up_after_max_attempts(self, orchestrator, setup_collaborator):
        setup_collaborator.script("u1", *[SetupResult(error="Network error")] * 4)
        batch_id = await _started(orchestrator, urls=("u1",))

        statuses = [(await orchestrator.process_next_file(batch_id)).status for _ in range(4)]
        assert statuses == ["retrying", "retrying", "retrying", "failed"]
        batch = await _batch(orchestrator, batch_id)
        assert batch.files[0].retry_count == 3

    @pytest.mark.asyncio
    async def test_unclassified_retried_once(self, orchestrator, setup_collaborator):
        setup_collaborator.script("u1", RuntimeError("boom"), RuntimeError("boom"))
        batch_id = await _started(orchestrator, urls=("u1",))

        first = await orchestrator.process_next_file(batch_id)
        second = await orchestrator.process_next_file(batch_id)
        assert (first.status, second.status) == ("retrying", "failed")
        batch = await _batch(orchestrator, batch_id)
        assert batch.files[0].error_kind == ErrorKind.UNCLASSIFIED
        assert batch.files[0].error_message == "boom"

    @pytest.mark.asyncio
    async def test_job_error_requeues_file(self, orchestrator, processor, setup_collaborator):
        batch_id = await _started(orchestrator, urls=("u1",))
        await orchestrator.process_next_file(batch_id)
        processor.fail_next("task-u1", JobProgress(status="error", error="API error 503"))

        result = await orchestrator.process_next_file(batch_id)
        assert result.status == "retrying"
        await _drain(orchestrator, batch_id)
        assert setup_collaborator.calls == ["u1", "u1"]

    @pytest.mark.asyncio
    async def test_processor_exception(self, orchestrator, processor):
        batch_id = await _started(orchestrator, urls=("u1",))
        await orchestrator.process_next_file(batch_id)
        with patch.object(processor, "advance", side_effect=ConnectionError("connection reset")):
            result = await orchestrator.process_next_file(batch_id)
        assert result.status == "retrying"
        batch = await _batch(orchestrator, batch_id)
        assert batch.files[0].error_kind == ErrorKind.TRANSIENT

    @pytest.mark.asyncio
    async def test_processor_exception_keeps_job_progress(self, orchestrator, processor):
        batch_id = await _started(orchestrator, urls=("u1",))
        await orchestrator.process_next_file(batch_id)
        assert (await orchestrator.process_next_file(batch_id)).completed_jobs == 1

        with patch.object(processor, "advance", side_effect=ConnectionError("connection reset")):
            result = await orchestrator.process_next_file(batch_id)
        assert result.status == "retrying"
        assert (result.completed_jobs, result.total_jobs) == (1, 2)
        batch = await _batch(orchestrator, batch_id)
        assert batch.files[0].completed_jobs == 1

    @pytest.mark.asyncio
    async def test_zero_attempts_never_retries(
        self, memory_store, resolver, setup_collaborator, processor, clock
    ):
        orchestrator = BatchOrchestrator(
            memory_store, resolver=resolver, setup=setup_collaborator,
            processor=processor, config=OrchestratorConfig(max_retry_attempts=0),
            clock=clock,
        )
        setup_collaborator.script("u1", RuntimeError("boom"))
        batch_id = await _started(orchestrator, urls=("u1",))
        assert (await orchestrator.process_next_file(batch_id)).status == "failed"


class TestOnFileCompleted:
    @pytest.mark.asyncio
    async def test_failure_is_final(self, orchestrator):
        batch_id = await _started(orchestrator)
        await orchestrator.process_next_file(batch_id)

        result = await orchestrator.on_file_completed(
            batch_id, "task-u1", FileOutcome(success=False, error="Network error")
        )
        assert result.status == "failed"
        batch = await _batch(orchestrator, batch_id)
        assert batch.files[0].error_kind == ErrorKind.TRANSIENT
        assert batch.failed_files == 1

    @pytest.mark.asyncio
    async def test_unknown_and_repeated(self, orchestrator):
        batch_id = await _started(orchestrator)
        await orchestrator.process_next_file(batch_id)

        unknown = await orchestrator.on_file_completed(
            batch_id, "nope", FileOutcome(success=True)
        )
        assert unknown.status == "unknown_file"

        await orchestrator.on_file_completed(batch_id, "task-u1", FileOutcome(success=True))
        repeated = await orchestrator.on_file_completed(
            batch_id, "task-u1", FileOutcome(success=False, error="late")
        )
        assert repeated.status == "ignored"
        assert (await _batch(orchestrator, batch_id)).completed_files == 1


# === Health and recovery ===


class TestHealthAndRecovery:
    @pytest.mark.asyncio
    async def test_health_stale(self, orchestrator, clock):
        batch_id = await _started(orchestrator)
        assert (await orchestrator.health_check(batch_id)).status == "healthy"
        clock.advance(minutes=45)
        report = await orchestrator.health_check(batch_id)
        assert report.status == "warning"
        assert report.has_issue("stale")

    @pytest.mark.asyncio
    async def test_recover_stale_processing_file(self, orchestrator, clock):
        batch_id = await _started(orchestrator)
        await orchestrator.process_next_file(batch_id)
        clock.advance(minutes=31)

        result = await orchestrator.attempt_auto_recovery(batch_id)
        assert result.status == "recovered"
        assert [a.action for a in result.actions] == ["requeue_stale"]
        batch = await _batch(orchestrator, batch_id)
        task = batch.files[0]
        assert task.status == FileStatus.RETRYING
        assert task.retry_count == 1
        assert task.error_message == "Timed out: no progress for over 30 minutes"

        final = await _drain(orchestrator, batch_id)
        assert final.completed_files == 2

    @pytest.mark.asyncio
    async def test_recover_failed_files_up_to_cap(
        self, memory_store, resolver, setup_collaborator, processor, clock
    ):
        orchestrator = BatchOrchestrator(
            memory_store, resolver=resolver, setup=setup_collaborator,
            processor=processor, config=OrchestratorConfig(auto_recovery_max_failed=1),
            clock=clock,
        )
        batch_id = await _started(orchestrator, urls=("u1", "u2", "u3"))
        for url in ("u1", "u2"):
            await orchestrator.process_next_file(batch_id)
            await orchestrator.on_file_completed(
                batch_id, f"task-{url}", FileOutcome(success=False, error="Network error")
            )

        result = await orchestrator.attempt_auto_recovery(batch_id)
        assert [(a.action, a.file_index) for a in result.actions] == [("requeue_failed", 0)]
        batch = await _batch(orchestrator, batch_id)
        assert batch.files[0].status == FileStatus.RETRYING
        assert batch.files[1].status == FileStatus.FAILED

    @pytest.mark.asyncio
    async def test_validation_failures_not_recovered(self, orchestrator):
        batch_id = await _started(orchestrator)
        await orchestrator.process_next_file(batch_id)
        await orchestrator.on_file_completed(
            batch_id, "task-u1", FileOutcome(success=False, error="File not found")
        )
        result = await orchestrator.attempt_auto_recovery(batch_id)
        assert result.status == "no_recovery_possible"

    @pytest.mark.asyncio
    async def test_recover_reopens_completed_batch(self, orchestrator, setup_collaborator):
        setup_collaborator.script("u2", RuntimeError("boom"), RuntimeError("boom"))
        batch_id = await _started(orchestrator)
        await _drain(orchestrator, batch_id)
        batch = await _batch(orchestrator, batch_id)
        assert batch.status == BatchStatus.COMPLETED
        assert (batch.files[1].status, batch.files[1].retry_count) == (FileStatus.FAILED, 1)

        result = await orchestrator.attempt_auto_recovery(batch_id)
        assert result.status == "recovered"
        assert [(a.action, a.file_index) for a in result.actions] == [("requeue_failed", 1)]
        batch = await _batch(orchestrator, batch_id)
        assert batch.status == BatchStatus.PROCESSING
        assert batch.completed_at is None
        assert batch.total_duration_seconds is None
        assert batch.files[1].status == FileStatus.RETRYING

        final = await _drain(orchestrator, batch_id)
        assert final.completed_files == 2

    @pytest.mark.asyncio
    async def test_completed_batch_without_failures_stays_completed(self, orchestrator):
        batch_id = await _started(orchestrator)
        await _drain(orchestrator, batch_id)
        result = await orchestrator.attempt_auto_recovery(batch_id)
        assert result.status == "no_recovery_possible"
        assert (await _batch(orchestrator, batch_id)).status == BatchStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_cancelled_batch_cannot_recover(self, orchestrator):
        batch_id = await _created(orchestrator)
        await orchestrator.cancel(batch_id)
        with pytest.raises(InvalidTransitionError):
            await orchestrator.attempt_auto_recovery(batch_id)


class TestRetryFailedFiles:
    @pytest.mark.asyncio
    async def test_requeue_reopens_completed_batch(self, orchestrator, setup_collaborator):
        setup_collaborator.script("u1", SetupResult(error="Unsupported file type"))
        batch_id = await _started(orchestrator)
        await _drain(orchestrator, batch_id)

        result = await orchestrator.retry_failed_files(batch_id, [0, 1, 7, 0])
        assert result.status == "requeued"
        assert result.requeued == [0]
        assert {(e.index, e.error) for e in result.errors} == {
            (1, "File is completed"),
            (7, "No such file"),
        }

        batch = await _batch(orchestrator, batch_id)
        assert batch.status == BatchStatus.PROCESSING
        assert batch.completed_at is None
        assert batch.files[0].retry_count == 1

        final = await _drain(orchestrator, batch_id)
        assert final.completed_files == 2

    @pytest.mark.asyncio
    async def test_retry_limit(self, memory_store, resolver, setup_collaborator, processor, clock):
        orchestrator = BatchOrchestrator(
            memory_store, resolver=resolver, setup=setup_collaborator,
            processor=processor, config=OrchestratorConfig(max_retry_attempts=1),
            clock=clock,
        )
        setup_collaborator.script("u1", *[SetupResult(error="permission denied")] * 2)
        batch_id = await _started(orchestrator, urls=("u1",))
        await _drain(orchestrator, batch_id)
        await orchestrator.retry_failed_files(batch_id, [0])
        await _drain(orchestrator, batch_id)

        result = await orchestrator.retry_failed_files(batch_id, [0])
        assert result.status == "nothing_requeued"
        assert result.errors[0].error == "Retry limit reached (1/1)"

    @pytest.mark.asyncio
    async def test_cancelled_batch(self, orchestrator):
        batch_id = await _created(orchestrator)
        await orchestrator.cancel(batch_id)
        with pytest.raises(InvalidTransitionError):
            await orchestrator.retry_failed_files(batch_id, [0])


# === Compare-and-swap ===


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_write_during_setup_conflicts(
        self, memory_store, resolver, setup_collaborator, processor, clock
    ):
        other = BatchOrchestrator(memory_store, resolver=resolver, clock=clock)
        state = {}

        async def competing_pause():
            await other.pause(state["batch_id"])

        orchestrator = BatchOrchestrator(
            memory_store, resolver=resolver,
            setup=_InterferingSetup(setup_collaborator, competing_pause),
            processor=processor, clock=clock,
        )
        state["batch_id"] = await _started(orchestrator)

        with pytest.raises(ConcurrentModificationError):
            await orchestrator.process_next_file(state["batch_id"])
        batch = await _batch(orchestrator, state["batch_id"])
        assert batch.status == BatchStatus.PAUSED
        assert batch.files[0].status == FileStatus.PENDING

    @pytest.mark.asyncio
    async def test_pure_mutation_is_reapplied(self, orchestrator):
        batch_id = await _created(orchestrator)
        repo = orchestrator._repo
        real_save = repo.save
        calls = []

        async def flaky_save(batch, expected_version):
            calls.append(expected_version)
            if len(calls) == 1:
                raise ConcurrentModificationError(batch.batch_id)
            return await real_save(batch, expected_version)

        with patch.object(repo, "save", side_effect=flaky_save):
            result = await orchestrator.start(batch_id)
        assert result.status == "started"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_repeated_conflicts(self, orchestrator):
        batch_id = await _created(orchestrator)
        with patch.object(
            orchestrator._repo, "save",
            side_effect=ConcurrentModificationError(batch_id),
        ):
            with pytest.raises(ConcurrentModificationError):
                await orchestrator.start(batch_id)
