# src/jobs/processor.py - v2
"""Per-job driver: one translation job per advance() call.

For the next job of a prepared task:
  1. extract the job's source text through the file's format handler
  2. extract terms and match them against the batch dictionary
     (dictionary read through the per-task term cache)
  3. translate with confirmed pairs forced
  4. write the translated job back
  5. route new term pairs through the quality gate (best effort)

Failures are returned as JobProgress(status="error") with a classified kind;
the job is not counted and will be attempted again on the next call.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from transbatch.batch.collaborators import BaseJobProcessor, JobProgress
from transbatch.batch.models import ErrorKind
from transbatch.batch.retry_policy import resolve_error_kind
from transbatch.formats.handler_factory import UnsupportedFileTypeError, create_handler
from transbatch.jobs.models import JobState, TranslationJob, job_state_key
from transbatch.jobs.term_extractor import BaseTermExtractor
from transbatch.jobs.translator import BaseTranslator
from transbatch.store.base_state_store import BaseStateStore
from transbatch.terms.base_dictionary_store import BaseDictionaryStore
from transbatch.terms.matcher import TermMatcher
from transbatch.terms.models import DictionaryTerm
from transbatch.terms.quality_gate import QualityGate
from transbatch.terms.term_cache import TermCache

if TYPE_CHECKING:
    from transbatch.config.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 21_600


class JobProcessor(BaseJobProcessor):
    """Advances prepared translation tasks stored by JobTranslationSetup."""

    def __init__(
        self,
        store: BaseStateStore,
        dictionary: BaseDictionaryStore,
        extractor: BaseTermExtractor,
        translator: BaseTranslator,
        matcher: TermMatcher | None = None,
        quality_gate: QualityGate | None = None,
        term_cache: TermCache | None = None,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
    ) -> None:
        self._store = store
        self._dictionary = dictionary
        self._extractor = extractor
        self._translator = translator
        self._matcher = matcher or TermMatcher()
        self._term_cache = term_cache or TermCache(store, ttl_seconds)
        self._gate = quality_gate or QualityGate(term_cache=self._term_cache)
        self._ttl = ttl_seconds

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: BaseStateStore,
        dictionary: BaseDictionaryStore,
        extractor: BaseTermExtractor,
        translator: BaseTranslator,
    ) -> JobProcessor:
        """Build a processor whose matcher and quality gate follow settings."""
        term_cache = TermCache(store, settings.store_ttl_seconds)
        return cls(
            store,
            dictionary,
            extractor,
            translator,
            matcher=TermMatcher.from_settings(settings),
            quality_gate=QualityGate.from_settings(settings, term_cache=term_cache),
            term_cache=term_cache,
            ttl_seconds=settings.store_ttl_seconds,
        )

    async def advance(self, task_id: str) -> JobProgress:
        value = await self._store.get_value(job_state_key(task_id))
        if value is None:
            return JobProgress(
                status="error",
                error=f"Translation task {task_id} not found or expired",
                error_kind=ErrorKind.VALIDATION,
            )
        state = JobState(**value)

        job = state.next_job()
        if job is None:
            return self._progress(state)

        try:
            await self._run_job(state, job)
        except UnsupportedFileTypeError as e:
            return self._failure(state, job, str(e), ErrorKind.VALIDATION)
        except Exception as e:
            return self._failure(state, job, str(e) or type(e).__name__, getattr(e, "kind", None))

        state.completed_jobs += 1
        state.updated_at = self._store.now()
        await self._store.put(
            job_state_key(task_id), state.model_dump(mode="json"), ttl_seconds=self._ttl
        )
        if state.is_done:
            await self._term_cache.invalidate(task_id)
            logger.info(
                "Task %s complete: %d jobs written to %s",
                task_id, state.total_jobs, state.target_file_url,
            )
        return self._progress(state)

    async def _run_job(self, state: JobState, job: TranslationJob) -> None:
        handler = create_handler(state.file_type)
        text = await handler.extract_text(job)

        terms = await self._extractor.extract_terms(text) if text.strip() else []
        dictionary_terms: list[DictionaryTerm] = []
        if state.dict_name:
            dictionary_terms = await self._term_cache.get_terms(
                self._dictionary, state.dict_name, scope=state.task_id
            )
        match = self._matcher.match(terms, dictionary_terms)

        output = await self._translator.translate(
            text, state.target_lang, match.confirmed_pairs, match.new_candidates
        )
        await handler.write_job(job, output.text)
        logger.debug(
            "Task %s job %d/%d (%s): %s",
            state.task_id, job.index + 1, state.total_jobs, job.label, match.summary(),
        )

        if output.new_terms and state.dict_name:
            try:
                await self._gate.evaluate_and_register(
                    output.new_terms, self._dictionary, state.dict_name,
                    cache_scope=state.task_id,
                )
            except Exception as e:
                logger.warning(
                    "Quality gate skipped for task %s job %d: %s",
                    state.task_id, job.index, e,
                )

    @staticmethod
    def _progress(state: JobState) -> JobProgress:
        return JobProgress(
            status="complete" if state.is_done else "processing",
            completed_jobs=state.completed_jobs,
            total_jobs=state.total_jobs,
            target_file_url=state.target_file_url,
        )

    @staticmethod
    def _failure(
        state: JobState,
        job: TranslationJob,
        message: str,
        kind: ErrorKind | str | None,
    ) -> JobProgress:
        logger.warning(
            "Task %s job %d failed: %s", state.task_id, job.index, message
        )
        return JobProgress(
            status="error",
            completed_jobs=state.completed_jobs,
            total_jobs=state.total_jobs,
            target_file_url=state.target_file_url,
            error=message,
            error_kind=resolve_error_kind(kind, message),
        )
