# src/api/service.py - v1
"""Public batch API: one entry point per operation, structured results only.

Usage:
    from transbatch.api.service import build_service
    service = build_service(resolver=..., setup=..., processor=...)
    created = await service.create_batch(urls, "en")
    await service.start_batch(created.batch_id)
    while (step := await service.process_next_file(created.batch_id)).status not in STOP:
        ...

Nothing raises past this boundary. Domain errors become an OperationResult
whose status is the error's status (not_found, invalid_state, conflict,
error); unexpected exceptions are logged with traceback and reported as
status="error".
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Awaitable

from pydantic import ValidationError

from transbatch.api.models import CreateBatchRequest, FileCompletionRequest, RetryRequest
from transbatch.batch.errors import BatchError
from transbatch.batch.models import OperationResult
from transbatch.batch.orchestrator import BatchOrchestrator, OrchestratorConfig
from transbatch.config.settings import Settings
from transbatch.logging.context import clear_context
from transbatch.store.store_factory import create_state_store

if TYPE_CHECKING:
    from transbatch.batch.collaborators import (
        BaseFileResolver,
        BaseJobProcessor,
        BaseTranslationSetup,
        FileOutcome,
    )
    from transbatch.store.base_state_store import BaseStateStore

logger = logging.getLogger(__name__)

# Statuses after which a poll loop should stop calling process_next_file.
STOP_STATUSES = frozenset(
    {"completed", "cancelled", "paused", "pending", "not_found", "invalid_state", "error"}
)


class BatchService:
    """Structured-result wrapper around BatchOrchestrator."""

    def __init__(self, orchestrator: BatchOrchestrator) -> None:
        self.orchestrator = orchestrator

    async def create_batch(
        self,
        urls: list[str],
        target_lang: str,
        dict_name: str | None = None,
        name: str | None = None,
    ) -> OperationResult:
        try:
            request = CreateBatchRequest(
                urls=urls, target_lang=target_lang, dict_name=dict_name, name=name
            )
        except ValidationError as e:
            return _invalid_request(e)
        return await self._call(
            "create_batch",
            None,
            self.orchestrator.create_batch(
                request.urls, request.target_lang, request.dict_name, request.name
            ),
        )

    async def start_batch(self, batch_id: str) -> OperationResult:
        return await self._call("start_batch", batch_id, self.orchestrator.start(batch_id))

    async def process_next_file(self, batch_id: str) -> OperationResult:
        return await self._call(
            "process_next_file", batch_id, self.orchestrator.process_next_file(batch_id)
        )

    async def on_file_completed(
        self,
        batch_id: str,
        correlation_id: str,
        result: FileOutcome | dict[str, Any],
    ) -> OperationResult:
        payload = result.model_dump() if hasattr(result, "model_dump") else dict(result)
        try:
            request = FileCompletionRequest(correlation_id=correlation_id, **payload)
        except ValidationError as e:
            return _invalid_request(e, batch_id)
        return await self._call(
            "on_file_completed",
            batch_id,
            self.orchestrator.on_file_completed(
                batch_id, request.correlation_id, request.to_outcome()
            ),
        )

    async def pause_batch(self, batch_id: str) -> OperationResult:
        return await self._call("pause_batch", batch_id, self.orchestrator.pause(batch_id))

    async def resume_batch(self, batch_id: str) -> OperationResult:
        return await self._call("resume_batch", batch_id, self.orchestrator.resume(batch_id))

    async def cancel_batch(self, batch_id: str, reason: str | None = None) -> OperationResult:
        return await self._call(
            "cancel_batch", batch_id, self.orchestrator.cancel(batch_id, reason)
        )

    async def get_batch_status(self, batch_id: str) -> OperationResult:
        return await self._call(
            "get_batch_status", batch_id, self.orchestrator.get_status(batch_id)
        )

    async def perform_health_check(self, batch_id: str) -> OperationResult:
        return await self._call(
            "perform_health_check", batch_id, self.orchestrator.health_check(batch_id)
        )

    async def attempt_auto_recovery(self, batch_id: str) -> OperationResult:
        return await self._call(
            "attempt_auto_recovery",
            batch_id,
            self.orchestrator.attempt_auto_recovery(batch_id),
        )

    async def retry_failed_files(self, batch_id: str, indices: list[int]) -> OperationResult:
        try:
            request = RetryRequest(indices=indices)
        except ValidationError as e:
            return _invalid_request(e, batch_id)
        return await self._call(
            "retry_failed_files",
            batch_id,
            self.orchestrator.retry_failed_files(batch_id, request.indices),
        )

    async def _call(
        self,
        operation: str,
        batch_id: str | None,
        call: Awaitable[OperationResult],
    ) -> OperationResult:
        try:
            return await call
        except BatchError as e:
            logger.warning("%s on batch %s failed: %s", operation, batch_id, e)
            return OperationResult(status=e.status, message=str(e), batch_id=batch_id)
        except Exception as e:
            logger.exception("Unexpected error in %s on batch %s", operation, batch_id)
            return OperationResult(
                status="error",
                message=f"{type(e).__name__}: {e}",
                batch_id=batch_id,
            )
        finally:
            clear_context()


def build_service(
    settings: Settings | None = None,
    store: BaseStateStore | None = None,
    resolver: BaseFileResolver | None = None,
    setup: BaseTranslationSetup | None = None,
    processor: BaseJobProcessor | None = None,
) -> BatchService:
    """Wire a BatchService from settings and optional collaborators."""
    settings = settings or Settings()
    store = store or create_state_store(settings)
    orchestrator = BatchOrchestrator(
        store,
        resolver=resolver,
        setup=setup,
        processor=processor,
        config=OrchestratorConfig.from_settings(settings),
    )
    return BatchService(orchestrator)


def _invalid_request(error: ValidationError, batch_id: str | None = None) -> OperationResult:
    first = error.errors()[0]
    field = ".".join(str(p) for p in first.get("loc", ())) or "request"
    return OperationResult(
        status="error",
        message=f"Invalid request ({field}): {first.get('msg', 'invalid value')}",
        batch_id=batch_id,
    )
