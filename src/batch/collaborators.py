# src/batch/collaborators.py - v1
"""Interfaces of the external collaborators the orchestrator drives.

- BaseFileResolver: validates a URL and resolves file metadata
- BaseTranslationSetup: prepares a single-file translation (creates jobs)
- BaseJobProcessor: advances one job of a prepared translation per call

Collaborators report failures as data (error + optional ErrorKind) rather
than raising; the orchestrator also tolerates raised exceptions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Literal

from pydantic import BaseModel

from transbatch.batch.models import ErrorKind


class ResolvedFile(BaseModel):
    """File metadata for a validated URL."""

    source_url: str
    file_id: str
    file_name: str
    file_type: str


class FileResolutionError(Exception):
    """Raised by resolvers for URLs that cannot be used."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.VALIDATION) -> None:
        self.kind = kind
        super().__init__(message)


class SetupResult(BaseModel):
    """Outcome of preparing one file for translation."""

    task_id: str | None = None
    job_id: str | None = None
    total_jobs: int = 0
    target_file_url: str | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.task_id is not None


class JobProgress(BaseModel):
    """Outcome of advancing a prepared translation by one job."""

    status: Literal["processing", "complete", "error"]
    completed_jobs: int = 0
    total_jobs: int = 0
    target_file_url: str | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None


class FileOutcome(BaseModel):
    """Final result reported through on_file_completed."""

    success: bool
    target_file_url: str | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None


class BaseFileResolver(ABC):
    @abstractmethod
    async def validate(self, url: str) -> bool:
        """Cheap syntactic/accessibility check."""

    @abstractmethod
    async def resolve(self, url: str) -> ResolvedFile:
        """Resolve file metadata.

        Raises:
            FileResolutionError: If the file cannot be used.
        """


class BaseTranslationSetup(ABC):
    @abstractmethod
    async def setup(
        self, url: str, target_lang: str, dict_name: str | None
    ) -> SetupResult:
        """Prepare translation of one file and return its correlation handles."""


class BaseJobProcessor(ABC):
    @abstractmethod
    async def advance(self, task_id: str) -> JobProgress:
        """Process the next job of task_id."""
