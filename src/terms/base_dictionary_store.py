# src/terms/base_dictionary_store.py - v1
"""Abstract term dictionary interface.

Dictionaries are owned by an external service (spreadsheet, database...).
The matching side only reads them; new entries arrive solely through the
quality gate's add_terms call.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from transbatch.terms.models import AddTermsResult, DictionaryTerm


class BaseDictionaryStore(ABC):
    """Read/append access to named term dictionaries."""

    @abstractmethod
    async def get_all_terms(self, dict_name: str) -> list[DictionaryTerm]:
        """Return every entry of a dictionary (empty list if unknown)."""

    @abstractmethod
    async def add_terms(
        self, dict_name: str, terms: list[DictionaryTerm]
    ) -> AddTermsResult:
        """Append entries to a dictionary."""
