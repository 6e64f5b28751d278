# tests/unit/store/test_unit_store_factory.py - v1
"""Tests for store/store_factory.py."""

from __future__ import annotations

import pytest

from transbatch.config.settings import Settings
from transbatch.store.json_store import JsonStateStore
from transbatch.store.memory_store import MemoryStateStore
from transbatch.store.sqlite_store import SqliteStateStore
from transbatch.store.store_factory import create_state_store


class TestCreateStateStore:
    def test_default_is_memory(self):
        assert isinstance(create_state_store(), MemoryStateStore)

    def test_memory(self):
        settings = Settings(_env_file=None, store_backend="memory")
        assert isinstance(create_state_store(settings), MemoryStateStore)

    def test_json(self, tmp_path):
        settings = Settings(_env_file=None, store_backend="json", store_root=tmp_path / "s")
        store = create_state_store(settings)
        assert isinstance(store, JsonStateStore)
        assert (tmp_path / "s").is_dir()

    def test_sqlite(self, tmp_path):
        settings = Settings(_env_file=None, store_backend="sqlite", store_root=tmp_path)
        store = create_state_store(settings)
        try:
            assert isinstance(store, SqliteStateStore)
            assert (tmp_path / "transbatch_state.db").exists()
        finally:
            store.close()

    def test_redis_without_url(self):
        settings = Settings(
            _env_file=None, store_backend="redis", store_redis_url="redis://x:6379"
        )
        settings.store_redis_url = ""
        with pytest.raises(ValueError, match="STORE_REDIS_URL"):
            create_state_store(settings)
