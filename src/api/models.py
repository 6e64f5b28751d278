# src/api/models.py - v2
"""API-level request models validated before reaching the orchestrator."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from transbatch.batch.collaborators import FileOutcome
from transbatch.batch.models import ErrorKind


class CreateBatchRequest(BaseModel):
    """Input of BatchService.create_batch."""

    urls: list[str] = Field(min_length=1)
    target_lang: str = Field(min_length=1)
    dict_name: str | None = None
    name: str | None = None

    @field_validator("urls")
    @classmethod
    def _strip_urls(cls, v: list[str]) -> list[str]:
        return [url.strip() for url in v]

    @field_validator("target_lang")
    @classmethod
    def _normalize_lang(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("target_lang must not be blank")
        return v


class FileCompletionRequest(BaseModel):
    """Callback payload reporting a file's final outcome."""

    correlation_id: str = Field(min_length=1)
    success: bool
    target_file_url: str | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None

    def to_outcome(self) -> FileOutcome:
        return FileOutcome(
            success=self.success,
            target_file_url=self.target_file_url,
            error=self.error,
            error_kind=self.error_kind,
        )


class RetryRequest(BaseModel):
    indices: list[int] = Field(min_length=1)
