# src/terms/matcher.py - v2
"""Dictionary term matching cascade.

Each stage only sees the terms the previous stages left unresolved:

  1. exact       raw, case-sensitive equality with a dictionary source
  2. normalized  equality after normalize()
  3. partial     normalized term is a substring of a normalized source
  4. fuzzy       best combined() score >= threshold -> candidate

Stages 1-3 produce confirmed pairs. Fuzzy hits and leftovers become
candidates, which only ever flow into the quality gate. Terms that normalize
to nothing (blank or symbol-only) fall through every stage as new terms.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from transbatch.core.similarity import combined
from transbatch.terms.models import (
    CandidateTerm,
    ConfirmedPair,
    DictionaryTerm,
    MatchResult,
)
from transbatch.terms.normalizer import normalize

if TYPE_CHECKING:
    from transbatch.config.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_PARTIAL_MIN_LENGTH = 3
DEFAULT_FUZZY_THRESHOLD = 0.8


class TermMatcher:
    """Resolve extracted terms against a dictionary."""

    def __init__(
        self,
        partial_min_length: int = DEFAULT_PARTIAL_MIN_LENGTH,
        fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
    ) -> None:
        self.partial_min_length = partial_min_length
        self.fuzzy_threshold = fuzzy_threshold

    @classmethod
    def from_settings(cls, settings: Settings) -> TermMatcher:
        return cls(
            partial_min_length=settings.partial_min_length,
            fuzzy_threshold=settings.fuzzy_threshold,
        )

    def match(
        self, terms: list[str], dictionary_terms: list[DictionaryTerm]
    ) -> MatchResult:
        """Run the cascade over terms.

        Args:
            terms: Extracted terms; duplicates are collapsed.
            dictionary_terms: Entries of the target dictionary (read-only).

        Returns:
            MatchResult where every distinct input term appears exactly once.
        """
        unique = _dedupe(terms)
        result = MatchResult()
        if not unique:
            return result

        if not dictionary_terms:
            result.new_candidates = [
                CandidateTerm(source=t, reason="new_term") for t in unique
            ]
            return result

        remaining = self._match_exact(unique, dictionary_terms, result)

        normalized_index = _build_normalized_index(dictionary_terms)
        remaining = self._match_normalized(remaining, normalized_index, result)
        remaining = self._match_partial(remaining, normalized_index, result)
        fuzzy, leftovers = self._match_fuzzy(remaining, normalized_index)

        result.new_candidates.extend(fuzzy)
        result.new_candidates.extend(
            CandidateTerm(source=t, reason="new_term") for t in leftovers
        )

        logger.debug(
            "Matched %d terms against %d dictionary entries: %s",
            len(unique), len(dictionary_terms), result.summary(),
        )
        return result

    # --- Stages ---

    def _match_exact(
        self,
        terms: list[str],
        dictionary_terms: list[DictionaryTerm],
        result: MatchResult,
    ) -> list[str]:
        by_source: dict[str, DictionaryTerm] = {}
        for entry in dictionary_terms:
            by_source.setdefault(entry.source, entry)

        remaining: list[str] = []
        for term in terms:
            entry = by_source.get(term)
            if entry is None:
                remaining.append(term)
                continue
            result.confirmed_pairs.append(
                ConfirmedPair(source=term, target=entry.target, match_type="exact")
            )
        return remaining

    def _match_normalized(
        self,
        terms: list[str],
        index: dict[str, DictionaryTerm],
        result: MatchResult,
    ) -> list[str]:
        remaining: list[str] = []
        for term in terms:
            key = normalize(term)
            entry = index.get(key) if key else None
            if entry is None:
                remaining.append(term)
                continue
            result.confirmed_pairs.append(
                ConfirmedPair(
                    source=term,
                    target=entry.target,
                    match_type="normalized",
                    details={"dictionary_source": entry.source, "normalized": key},
                )
            )
        return remaining

    def _match_partial(
        self,
        terms: list[str],
        index: dict[str, DictionaryTerm],
        result: MatchResult,
    ) -> list[str]:
        remaining: list[str] = []
        for term in terms:
            key = normalize(term)
            entry = None
            if len(key) >= self.partial_min_length:
                entry = next(
                    (e for source, e in index.items() if key in source), None
                )
            if entry is None:
                remaining.append(term)
                continue
            result.confirmed_pairs.append(
                ConfirmedPair(
                    source=term,
                    target=entry.target,
                    match_type="partial",
                    details={"dictionary_source": entry.source},
                )
            )
        return remaining

    def _match_fuzzy(
        self,
        terms: list[str],
        index: dict[str, DictionaryTerm],
    ) -> tuple[list[CandidateTerm], list[str]]:
        candidates: list[CandidateTerm] = []
        leftovers: list[str] = []
        for term in terms:
            key = normalize(term)
            best_score = 0.0
            best_entry: DictionaryTerm | None = None
            for source, entry in index.items():
                score = combined(key, source)
                if score > best_score:
                    best_score, best_entry = score, entry

            if best_entry is not None and self.fuzzy_threshold <= best_score < 1.0:
                candidates.append(
                    CandidateTerm(
                        source=term,
                        reason="fuzzy_match",
                        similarity=round(best_score, 4),
                        details={
                            "dictionary_source": best_entry.source,
                            "dictionary_target": best_entry.target,
                        },
                    )
                )
            else:
                leftovers.append(term)

        candidates.sort(key=lambda c: c.similarity or 0.0, reverse=True)
        return candidates, leftovers


def _dedupe(terms: list[str]) -> list[str]:
    """Drop repeats, keeping first-occurrence order."""
    seen: set[str] = set()
    unique: list[str] = []
    for term in terms:
        if term in seen:
            continue
        seen.add(term)
        unique.append(term)
    return unique


def _build_normalized_index(
    dictionary_terms: list[DictionaryTerm],
) -> dict[str, DictionaryTerm]:
    """Map normalized source -> first dictionary entry sharing it.

    Insertion order follows dictionary order, which the partial stage relies
    on for its first-wins rule.
    """
    index: dict[str, DictionaryTerm] = {}
    for entry in dictionary_terms:
        key = normalize(entry.source)
        if key:
            index.setdefault(key, entry)
    return index
