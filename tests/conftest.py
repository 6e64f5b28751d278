# tests/conftest.py - v2
"""Shared test fixtures for all unit and integration tests.

Provides a controllable clock, an in-memory state store, scripted
collaborators for the orchestrator and a small sample dictionary.
No external services: all I/O stays in memory or under tmp_path.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from transbatch.batch.collaborators import (
    BaseFileResolver,
    BaseJobProcessor,
    BaseTranslationSetup,
    FileResolutionError,
    JobProgress,
    ResolvedFile,
    SetupResult,
)
from transbatch.batch.orchestrator import BatchOrchestrator, OrchestratorConfig
from transbatch.store.memory_store import MemoryStateStore
from transbatch.terms.memory_dictionary_store import MemoryDictionaryStore
from transbatch.terms.models import DictionaryTerm

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


# === Clock ===


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


# === Scripted collaborators ===


class FakeResolver(BaseFileResolver):
    """Any URL containing 'bad' is invalid; 'missing' fails at resolve()."""

    async def validate(self, url: str) -> bool:
        return bool(url) and "bad" not in url

    async def resolve(self, url: str) -> ResolvedFile:
        if "missing" in url:
            raise FileResolutionError(f"File not found: {url}")
        name = url.rstrip("/").rsplit("/", 1)[-1]
        return ResolvedFile(
            source_url=url, file_id=f"id-{name}", file_name=name, file_type="txt"
        )


class ScriptedSetup(BaseTranslationSetup):
    """Succeeds with task-<url>, unless a scripted outcome is queued for the URL."""

    def __init__(self, total_jobs: int = 2) -> None:
        self.total_jobs = total_jobs
        self.scripts: dict[str, list[SetupResult | Exception]] = {}
        self.calls: list[str] = []

    def script(self, url: str, *outcomes: SetupResult | Exception) -> None:
        self.scripts.setdefault(url, []).extend(outcomes)

    async def setup(self, url, target_lang, dict_name) -> SetupResult:
        self.calls.append(url)
        queued = self.scripts.get(url)
        if queued:
            outcome = queued.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        return SetupResult(
            task_id=f"task-{url}",
            job_id=f"job-{url}",
            total_jobs=self.total_jobs,
            target_file_url=f"{url}.{target_lang}",
        )


class ScriptedProcessor(BaseJobProcessor):
    """Completes one job per call; scripted errors are returned first."""

    def __init__(self, total_jobs: int = 2) -> None:
        self.total_jobs = total_jobs
        self.done: dict[str, int] = {}
        self.errors: dict[str, list[JobProgress]] = {}
        self.calls: list[str] = []

    def fail_next(self, task_id: str, progress: JobProgress) -> None:
        self.errors.setdefault(task_id, []).append(progress)

    async def advance(self, task_id: str) -> JobProgress:
        self.calls.append(task_id)
        queued = self.errors.get(task_id)
        if queued:
            return queued.pop(0)
        done = self.done.get(task_id, 0) + 1
        self.done[task_id] = done
        return JobProgress(
            status="complete" if done >= self.total_jobs else "processing",
            completed_jobs=done,
            total_jobs=self.total_jobs,
            target_file_url=f"{task_id}.out",
        )


# === Fixtures ===


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store(clock) -> MemoryStateStore:
    return MemoryStateStore(clock=clock)


@pytest.fixture
def resolver() -> FakeResolver:
    return FakeResolver()


@pytest.fixture
def setup_collaborator() -> ScriptedSetup:
    return ScriptedSetup()


@pytest.fixture
def processor() -> ScriptedProcessor:
    return ScriptedProcessor()


@pytest.fixture
def orchestrator(memory_store, resolver, setup_collaborator, processor, clock):
    return BatchOrchestrator(
        memory_store,
        resolver=resolver,
        setup=setup_collaborator,
        processor=processor,
        config=OrchestratorConfig(),
        clock=clock,
    )


@pytest.fixture
def sample_terms() -> list[DictionaryTerm]:
    return [
        DictionaryTerm(source="Google Drive", target="グーグルドライブ"),
        DictionaryTerm(source="スプレッドシート", target="spreadsheet"),
        DictionaryTerm(source="Machine Learning", target="機械学習"),
    ]


@pytest.fixture
def dictionary_store(sample_terms) -> MemoryDictionaryStore:
    return MemoryDictionaryStore({"glossary": sample_terms})
