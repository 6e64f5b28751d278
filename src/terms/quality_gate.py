# src/terms/quality_gate.py - v2
"""Quality gate for term pairs proposed by translation.

Decision rule on the pair score (similarity, else confidence, else 0.0):

    score >= threshold               -> approved, registered in the dictionary
    threshold * 0.5 <= score < thr.  -> pending, logged for manual review
    otherwise                        -> rejected, dropped

Registration is best effort: a failing write chunk is logged and reported,
chunks already written stay written.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable

from transbatch.terms.base_dictionary_store import BaseDictionaryStore
from transbatch.terms.models import DictionaryTerm, GateResult, TermPair
from transbatch.terms.term_cache import TermCache

if TYPE_CHECKING:
    from transbatch.config.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.8
DEFAULT_WRITE_CHUNK_SIZE = 50
PENDING_RATIO = 0.5


class QualityGate:
    """Score, classify and auto-register new term pairs."""

    def __init__(
        self,
        threshold: float = DEFAULT_THRESHOLD,
        write_chunk_size: int = DEFAULT_WRITE_CHUNK_SIZE,
        term_cache: TermCache | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.threshold = threshold
        self.write_chunk_size = max(1, write_chunk_size)
        self._term_cache = term_cache
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @classmethod
    def from_settings(
        cls, settings: Settings, term_cache: TermCache | None = None
    ) -> QualityGate:
        return cls(
            threshold=settings.quality_gate_threshold,
            write_chunk_size=settings.quality_gate_write_chunk_size,
            term_cache=term_cache,
        )

    def classify(self, pair: TermPair) -> str:
        """Return 'approved', 'pending' or 'rejected' for a single pair."""
        score = pair.score
        if score >= self.threshold:
            return "approved"
        if score >= self.threshold * PENDING_RATIO:
            return "pending"
        return "rejected"

    async def evaluate_and_register(
        self,
        pairs: list[TermPair],
        dictionary: BaseDictionaryStore,
        dict_name: str,
        cache_scope: str | None = None,
    ) -> GateResult:
        """Classify pairs and write approved ones to the dictionary.

        Args:
            pairs: New term pairs returned by translation.
            dictionary: Dictionary writer.
            dict_name: Target dictionary.
            cache_scope: Extra term cache scope to invalidate (e.g. task id).

        Returns:
            GateResult with per-bucket pairs and write outcome.
        """
        result = GateResult()
        for pair in pairs:
            getattr(result, self.classify(pair)).append(pair)

        for pair in result.pending:
            logger.info(
                "Term pending manual review: %s -> %s (score=%.2f)",
                pair.source, pair.target, pair.score,
            )
        if result.rejected:
            logger.debug("Rejected %d low-score term pairs", len(result.rejected))

        if not result.approved:
            return result

        to_write = await self._dedupe_against_dictionary(
            result, dictionary, dict_name
        )
        if to_write:
            await self._write_chunks(to_write, dictionary, dict_name, result)
            await self._invalidate(dict_name, cache_scope)

        logger.info(
            "Quality gate on %s: %d approved (%d registered, %d duplicate), "
            "%d pending, %d rejected",
            dict_name, len(result.approved), result.registered,
            len(result.duplicates), len(result.pending), len(result.rejected),
        )
        return result

    async def _dedupe_against_dictionary(
        self,
        result: GateResult,
        dictionary: BaseDictionaryStore,
        dict_name: str,
    ) -> list[DictionaryTerm]:
        existing = {t.key for t in await dictionary.get_all_terms(dict_name)}
        now = self._clock()
        to_write: list[DictionaryTerm] = []
        for pair in result.approved:
            key = (pair.source, pair.target)
            if key in existing:
                result.duplicates.append(pair)
                continue
            existing.add(key)
            to_write.append(
                DictionaryTerm(
                    source=pair.source,
                    target=pair.target,
                    part_of_speech=pair.part_of_speech,
                    notes=pair.notes or f"auto-registered (score={pair.score:.2f})",
                    created_at=now,
                )
            )
        return to_write

    async def _write_chunks(
        self,
        terms: list[DictionaryTerm],
        dictionary: BaseDictionaryStore,
        dict_name: str,
        result: GateResult,
    ) -> None:
        for start in range(0, len(terms), self.write_chunk_size):
            chunk = terms[start:start + self.write_chunk_size]
            try:
                outcome = await dictionary.add_terms(dict_name, chunk)
            except Exception as e:
                logger.warning(
                    "Dictionary write failed for %d terms in %s: %s",
                    len(chunk), dict_name, e,
                )
                result.write_errors.append(str(e))
                continue
            if not outcome.success:
                message = outcome.error or "dictionary rejected write"
                logger.warning(
                    "Dictionary write failed for %d terms in %s: %s",
                    len(chunk), dict_name, message,
                )
                result.write_errors.append(message)
                continue
            result.registered += outcome.added

    async def _invalidate(self, dict_name: str, cache_scope: str | None) -> None:
        if self._term_cache is None:
            return
        await self._term_cache.invalidate(dict_name)
        if cache_scope and cache_scope != dict_name:
            await self._term_cache.invalidate(cache_scope)
