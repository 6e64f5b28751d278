# src/terms/models.py - v1
"""Term dictionary domain models: DictionaryTerm, match results, gate results."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class DictionaryTerm(BaseModel):
    """One source -> target entry of a named dictionary."""

    source: str
    target: str
    part_of_speech: str = ""
    notes: str = ""
    created_at: datetime | None = None
    usage_count: int = 0

    @property
    def key(self) -> tuple[str, str]:
        return (self.source, self.target)


class ConfirmedPair(BaseModel):
    """Source/target mapping safe to apply directly during translation."""

    source: str
    target: str
    match_type: Literal["exact", "normalized", "partial"]
    details: dict[str, Any] = Field(default_factory=dict)


class CandidateTerm(BaseModel):
    """Extracted term not confidently resolved; never applied automatically."""

    source: str
    reason: Literal["fuzzy_match", "new_term"]
    details: dict[str, Any] = Field(default_factory=dict)
    similarity: float | None = None


class MatchResult(BaseModel):
    """Outcome of one matching pass. Each input term lands in exactly one list."""

    confirmed_pairs: list[ConfirmedPair] = Field(default_factory=list)
    new_candidates: list[CandidateTerm] = Field(default_factory=list)

    def summary(self) -> dict[str, int]:
        """Counts per match type / candidate reason, for logging."""
        counts: dict[str, int] = {}
        for pair in self.confirmed_pairs:
            counts[pair.match_type] = counts.get(pair.match_type, 0) + 1
        for cand in self.new_candidates:
            counts[cand.reason] = counts.get(cand.reason, 0) + 1
        return counts


class TermPair(BaseModel):
    """A new source/target pair proposed by translation."""

    source: str
    target: str
    similarity: float | None = None
    confidence: float | None = None
    part_of_speech: str = ""
    notes: str = ""

    @property
    def score(self) -> float:
        """Confidence score: similarity wins over confidence, default 0.0."""
        if self.similarity is not None:
            return self.similarity
        if self.confidence is not None:
            return self.confidence
        return 0.0


class AddTermsResult(BaseModel):
    """Outcome of a dictionary write."""

    added: int = 0
    success: bool = True
    error: str | None = None


class GateResult(BaseModel):
    """Outcome of QualityGate.evaluate_and_register."""

    approved: list[TermPair] = Field(default_factory=list)
    pending: list[TermPair] = Field(default_factory=list)
    rejected: list[TermPair] = Field(default_factory=list)
    duplicates: list[TermPair] = Field(default_factory=list)
    registered: int = 0
    write_errors: list[str] = Field(default_factory=list)
