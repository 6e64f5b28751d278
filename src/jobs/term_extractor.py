# src/jobs/term_extractor.py - v1
"""Term extraction interface and a pattern-based local extractor."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod

# Capitalized word runs ("Google Drive"), katakana runs, and
# acronym/product tokens ("API", "GPT-4").
_CAPITALIZED = re.compile(r"\b[A-Z][a-zA-Z0-9]*(?:[ \-][A-Z][a-zA-Z0-9]*)*\b")
_KATAKANA = re.compile(r"[゠-ヿ]{2,}")
_ACRONYM = re.compile(r"\b[A-Z]{2,}(?:-[0-9A-Za-z]+)?\b")


class BaseTermExtractor(ABC):
    @abstractmethod
    async def extract_terms(self, text: str) -> list[str]:
        """Return candidate terminology found in text."""


class PatternTermExtractor(BaseTermExtractor):
    """Regex extractor for proper nouns, katakana terms and acronyms."""

    def __init__(self, min_length: int = 2) -> None:
        self.min_length = min_length

    async def extract_terms(self, text: str) -> list[str]:
        found: list[str] = []
        for pattern in (_CAPITALIZED, _KATAKANA, _ACRONYM):
            found.extend(m.group(0).strip() for m in pattern.finditer(text))
        return [
            term for term in dict.fromkeys(found) if len(term) >= self.min_length
        ]
