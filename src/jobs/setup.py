# src/jobs/setup.py - v1
"""Single-file translation setup: resolve, split into jobs, store JobState."""

from __future__ import annotations

import logging
import uuid

from transbatch.batch.collaborators import (
    BaseFileResolver,
    BaseTranslationSetup,
    FileResolutionError,
    SetupResult,
)
from transbatch.batch.models import ErrorKind
from transbatch.formats.handler_factory import UnsupportedFileTypeError, create_handler
from transbatch.jobs.models import JobState, job_state_key
from transbatch.store.base_state_store import BaseStateStore

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 21_600


class JobTranslationSetup(BaseTranslationSetup):
    """Prepares a file for job-by-job translation by JobProcessor."""

    def __init__(
        self,
        resolver: BaseFileResolver,
        store: BaseStateStore,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
    ) -> None:
        self._resolver = resolver
        self._store = store
        self._ttl = ttl_seconds

    async def setup(
        self, url: str, target_lang: str, dict_name: str | None
    ) -> SetupResult:
        try:
            file = await self._resolver.resolve(url)
            handler = create_handler(file.file_type)
        except FileResolutionError as e:
            return SetupResult(error=str(e), error_kind=e.kind)
        except UnsupportedFileTypeError as e:
            return SetupResult(error=str(e), error_kind=ErrorKind.VALIDATION)

        try:
            jobs = await handler.create_jobs(file, target_lang)
        except OSError as e:
            return SetupResult(error=f"Cannot read {file.file_name}: {e}")
        if not jobs:
            return SetupResult(
                error=f"No translatable content in {file.file_name}",
                error_kind=ErrorKind.VALIDATION,
            )

        now = self._store.now()
        state = JobState(
            task_id=uuid.uuid4().hex,
            job_id=uuid.uuid4().hex,
            source_url=url,
            file_name=file.file_name,
            file_type=file.file_type,
            target_lang=target_lang,
            dict_name=dict_name,
            target_file_url=handler.target_url(file, target_lang),
            jobs=jobs,
            created_at=now,
            updated_at=now,
        )
        await self._store.put(
            job_state_key(state.task_id),
            state.model_dump(mode="json"),
            ttl_seconds=self._ttl,
        )
        logger.info(
            "Prepared %s as task %s (%d jobs -> %s)",
            file.file_name, state.task_id, state.total_jobs, state.target_file_url,
        )
        return SetupResult(
            task_id=state.task_id,
            job_id=state.job_id,
            total_jobs=state.total_jobs,
            target_file_url=state.target_file_url,
        )
