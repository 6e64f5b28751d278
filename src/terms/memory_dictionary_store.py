# src/terms/memory_dictionary_store.py - v1
"""In-memory dictionary store, optionally seeded from a JSON file.

JSON layout: a list of objects with at least "source" and "target", or a
mapping {dict_name: [...]} for several dictionaries at once.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from transbatch.terms.base_dictionary_store import BaseDictionaryStore
from transbatch.terms.models import AddTermsResult, DictionaryTerm

logger = logging.getLogger(__name__)


class MemoryDictionaryStore(BaseDictionaryStore):
    """Dictionaries kept in a dict of lists."""

    def __init__(self, dictionaries: dict[str, list[DictionaryTerm]] | None = None) -> None:
        self._dictionaries: dict[str, list[DictionaryTerm]] = {
            name: list(terms) for name, terms in (dictionaries or {}).items()
        }

    @classmethod
    def from_json_file(cls, path: Path, dict_name: str = "default") -> MemoryDictionaryStore:
        """Load dictionaries from a JSON file.

        A top-level list is stored under dict_name.
        """
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if isinstance(data, list):
            data = {dict_name: data}
        if not isinstance(data, dict):
            raise ValueError(f"Unsupported dictionary file layout in {path}")
        return cls(
            {
                name: [DictionaryTerm(**item) for item in items]
                for name, items in data.items()
            }
        )

    async def get_all_terms(self, dict_name: str) -> list[DictionaryTerm]:
        return [t.model_copy() for t in self._dictionaries.get(dict_name, [])]

    async def add_terms(
        self, dict_name: str, terms: list[DictionaryTerm]
    ) -> AddTermsResult:
        self._dictionaries.setdefault(dict_name, []).extend(terms)
        logger.debug("Added %d terms to dictionary %s", len(terms), dict_name)
        return AddTermsResult(added=len(terms), success=True)

    def dictionary_names(self) -> list[str]:
        return sorted(self._dictionaries)
