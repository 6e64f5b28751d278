# tests/unit/api/test_unit_service.py - v1
"""Tests for api/service.py: structured results at the public boundary."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from transbatch.api.service import STOP_STATUSES, BatchService, build_service
from transbatch.batch.models import BatchStatus
from transbatch.batch.orchestrator import BatchOrchestrator
from transbatch.config.settings import Settings
from transbatch.logging.context import get_context
from transbatch.store.memory_store import MemoryStateStore


@pytest.fixture
def service(orchestrator) -> BatchService:
    return BatchService(orchestrator)


async def _created(service, urls=("u1", "u2")) -> str:
    result = await service.create_batch(list(urls), "en")
    assert result.status == "created"
    return result.batch_id


class TestBatchService:
    @pytest.mark.asyncio
    async def test_poll_loop_until_completed(self, service):
        batch_id = await _created(service)
        assert (await service.start_batch(batch_id)).status == "started"

        steps = 0
        while True:
            result = await service.process_next_file(batch_id)
            steps += 1
            if result.status in STOP_STATUSES:
                break
        assert result.status == "completed"
        assert len(result.completed_file_list) == result.completed_files == 2
        assert steps == 7

    @pytest.mark.asyncio
    async def test_invalid_create_request(self, service):
        result = await service.create_batch([], "en")
        assert result.status == "error"
        assert result.message.startswith("Invalid request (urls)")

    @pytest.mark.asyncio
    async def test_no_usable_url(self, service):
        result = await service.create_batch(["bad"], "en")
        assert result.status == "error"
        assert "Invalid URL: bad" in result.message

    @pytest.mark.asyncio
    async def test_unknown_batch(self, service):
        result = await service.get_batch_status("ghost")
        assert result.status == "not_found"
        assert result.batch_id == "ghost"

    @pytest.mark.asyncio
    async def test_invalid_transition(self, service):
        batch_id = await _created(service)
        result = await service.resume_batch(batch_id)
        assert result.status == "invalid_state"

    @pytest.mark.asyncio
    async def test_lifecycle_statuses(self, service):
        batch_id = await _created(service)
        await service.start_batch(batch_id)
        assert (await service.pause_batch(batch_id)).status == "paused"
        assert (await service.resume_batch(batch_id)).status == "resumed"
        assert (await service.perform_health_check(batch_id)).status == "healthy"
        assert (await service.attempt_auto_recovery(batch_id)).status == "no_recovery_possible"
        assert (await service.cancel_batch(batch_id, "stop")).status == "cancelled"
        status = await service.get_batch_status(batch_id)
        assert status.batch.status == BatchStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_file_completion_from_dict(self, service):
        batch_id = await _created(service, urls=("u1",))
        await service.start_batch(batch_id)
        await service.process_next_file(batch_id)
        result = await service.on_file_completed(
            batch_id, "task-u1", {"success": False, "error": "Network error"}
        )
        assert result.status == "completed"
        assert result.failed_files == 1

    @pytest.mark.asyncio
    async def test_file_completion_invalid_payload(self, service):
        result = await service.on_file_completed("b1", "task-u1", {"error": "x"})
        assert result.status == "error"
        assert "success" in result.message

    @pytest.mark.asyncio
    async def test_retry_request_validated(self, service):
        result = await service.retry_failed_files("b1", [])
        assert result.status == "error"

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_result(self, service, orchestrator):
        with patch.object(orchestrator, "get_status", side_effect=RuntimeError("disk on fire")):
            result = await service.get_batch_status("b1")
        assert result.status == "error"
        assert result.message == "RuntimeError: disk on fire"

    @pytest.mark.asyncio
    async def test_context_cleared(self, service):
        batch_id = await _created(service)
        await service.start_batch(batch_id)
        await service.process_next_file(batch_id)
        assert get_context().as_dict() == {}


class TestBuildService:
    def test_uses_settings(self):
        settings = Settings(
            _env_file=None, store_backend="memory",
            max_retry_attempts=5, auto_recovery_max_failed=1,
        )
        service = build_service(settings)
        assert isinstance(service.orchestrator, BatchOrchestrator)
        assert service.orchestrator.config.max_retry_attempts == 5
        assert service.orchestrator.config.auto_recovery_max_failed == 1

    @pytest.mark.asyncio
    async def test_explicit_store(self, resolver, clock):
        store = MemoryStateStore(clock=clock)
        service = build_service(Settings(_env_file=None), store=store, resolver=resolver)
        result = await service.create_batch(["u1"], "en")
        assert result.status == "created"
        assert store.keys() == [f"batch_{result.batch_id}"]
