# src/jobs/translator.py - v1
"""Translator interface and a glossary-only translator.

Prompt construction and the LLM call live behind BaseTranslator; the
glossary translator only applies confirmed pairs and is meant for local
runs and tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from transbatch.jobs.models import TranslationOutput
from transbatch.terms.models import CandidateTerm, ConfirmedPair


class BaseTranslator(ABC):
    @abstractmethod
    async def translate(
        self,
        text: str,
        target_lang: str,
        confirmed_pairs: list[ConfirmedPair],
        candidates: list[CandidateTerm],
    ) -> TranslationOutput:
        """Translate text, forcing confirmed pairs; may propose new term pairs."""


class GlossaryTranslator(BaseTranslator):
    """Replaces confirmed source terms with their targets, longest first."""

    async def translate(
        self,
        text: str,
        target_lang: str,
        confirmed_pairs: list[ConfirmedPair],
        candidates: list[CandidateTerm],
    ) -> TranslationOutput:
        for pair in sorted(confirmed_pairs, key=lambda p: len(p.source), reverse=True):
            text = text.replace(pair.source, pair.target)
        return TranslationOutput(text=text)
