# src/terms/term_cache.py - v1
"""Dictionary term cache kept in the state store.

Translating one file runs many jobs against the same dictionary; the cache
avoids re-reading the whole dictionary for every job. Entries share the
store TTL and are invalidated whenever the quality gate registers new terms.
"""

from __future__ import annotations

import logging

from transbatch.store.base_state_store import BaseStateStore
from transbatch.terms.base_dictionary_store import BaseDictionaryStore
from transbatch.terms.models import DictionaryTerm

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 21_600


def cache_key(scope: str) -> str:
    return f"dict_cache_{scope}"


class TermCache:
    """Read-through cache of dictionary terms keyed by a scope (task id)."""

    def __init__(
        self,
        store: BaseStateStore,
        ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
    ) -> None:
        self._store = store
        self._ttl = ttl_seconds

    async def get_terms(
        self,
        dictionary: BaseDictionaryStore,
        dict_name: str,
        scope: str | None = None,
    ) -> list[DictionaryTerm]:
        """Return cached terms for scope, loading from dictionary on a miss."""
        key = cache_key(scope or dict_name)
        cached = await self._store.get_value(key)
        if cached is not None and cached.get("dict_name") == dict_name:
            return [DictionaryTerm(**item) for item in cached.get("terms", [])]

        terms = await dictionary.get_all_terms(dict_name)
        await self._store.put(
            key,
            {
                "dict_name": dict_name,
                "terms": [t.model_dump(mode="json") for t in terms],
            },
            ttl_seconds=self._ttl,
        )
        logger.debug("Cached %d terms of %s under %s", len(terms), dict_name, key)
        return terms

    async def invalidate(self, scope: str) -> None:
        """Drop the cache entry for scope so the next read reloads it."""
        await self._store.delete(cache_key(scope))
