# src/jobs/models.py - v1
"""Job-level models: TranslationJob, JobState, TranslationOutput."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from transbatch.terms.models import TermPair


class TranslationJob(BaseModel):
    """One unit of translation work within a file (e.g. a block range)."""

    job_id: str
    index: int
    source_path: str
    target_path: str
    start_line: int = 0
    end_line: int = 0
    label: str = ""


class TranslationOutput(BaseModel):
    """What a translator returns for one job."""

    text: str
    new_terms: list[TermPair] = Field(default_factory=list)


class JobState(BaseModel):
    """Progress of a prepared single-file translation, stored per task id."""

    task_id: str
    job_id: str
    source_url: str
    file_name: str
    file_type: str
    target_lang: str
    dict_name: str | None = None
    target_file_url: str
    jobs: list[TranslationJob] = Field(default_factory=list)
    completed_jobs: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def total_jobs(self) -> int:
        return len(self.jobs)

    @property
    def is_done(self) -> bool:
        return self.completed_jobs >= len(self.jobs)

    def next_job(self) -> TranslationJob | None:
        return None if self.is_done else self.jobs[self.completed_jobs]


def job_state_key(task_id: str) -> str:
    return f"job_task_{task_id}"
