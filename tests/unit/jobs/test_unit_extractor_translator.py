# tests/unit/jobs/test_unit_extractor_translator.py - v1
"""Tests for jobs/term_extractor.py and jobs/translator.py."""

from __future__ import annotations

import pytest

from transbatch.jobs.term_extractor import PatternTermExtractor
from transbatch.jobs.translator import GlossaryTranslator
from transbatch.terms.models import CandidateTerm, ConfirmedPair


class TestPatternTermExtractor:
    @pytest.mark.asyncio
    async def test_finds_terms(self):
        terms = await PatternTermExtractor().extract_terms(
            "We sync Google Drive with the API and GPT-4, then open スプレッドシート."
        )
        for expected in ("Google Drive", "API", "GPT-4", "スプレッドシート"):
            assert expected in terms
        assert len(terms) == len(set(terms))

    @pytest.mark.asyncio
    async def test_min_length(self):
        terms = await PatternTermExtractor(min_length=3).extract_terms("We use AI daily")
        assert terms == []

    @pytest.mark.asyncio
    async def test_plain_text(self):
        assert await PatternTermExtractor().extract_terms("nothing to see here") == []


class TestGlossaryTranslator:
    @pytest.mark.asyncio
    async def test_longest_pair_first(self):
        pairs = [
            ConfirmedPair(source="Drive", target="ドライブ", match_type="exact"),
            ConfirmedPair(source="Google Drive", target="グーグルドライブ", match_type="exact"),
        ]
        output = await GlossaryTranslator().translate(
            "Open Google Drive, then Drive.", "ja", pairs, []
        )
        assert output.text == "Open グーグルドライブ, then ドライブ."
        assert output.new_terms == []

    @pytest.mark.asyncio
    async def test_candidates_are_not_applied(self):
        output = await GlossaryTranslator().translate(
            "Spreadsheet", "ja", [], [CandidateTerm(source="Spreadsheet", reason="new_term")]
        )
        assert output.text == "Spreadsheet"
