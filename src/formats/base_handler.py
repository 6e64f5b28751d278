# src/formats/base_handler.py - v1
"""Abstract format handler: the per-format capability used by job processing.

The orchestrator never branches on file type. A handler is selected by the
file's file_type tag and knows how to split the file into jobs, read a job's
source text and write its translation back.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from transbatch.batch.collaborators import ResolvedFile
from transbatch.jobs.models import TranslationJob


class BaseFormatHandler(ABC):
    """Unified interface for translatable file formats."""

    @property
    @abstractmethod
    def file_types(self) -> list[str]:
        """file_type tags this handler serves (e.g. ['txt'])."""

    @abstractmethod
    def target_url(self, file: ResolvedFile, target_lang: str) -> str:
        """Where the translated file will be written."""

    @abstractmethod
    async def create_jobs(
        self, file: ResolvedFile, target_lang: str
    ) -> list[TranslationJob]:
        """Split the file into translation jobs, in write order."""

    @abstractmethod
    async def extract_text(self, job: TranslationJob) -> str:
        """Source text of one job."""

    @abstractmethod
    async def write_job(self, job: TranslationJob, text: str) -> None:
        """Write the translated text of one job to the target."""
