# src/store/store_factory.py - v1
"""Factory for state store instantiation."""

from __future__ import annotations

from transbatch.config.settings import Settings
from transbatch.store.base_state_store import BaseStateStore


def create_state_store(settings: Settings | None = None) -> BaseStateStore:
    """Instantiate the configured state backend.

    Args:
        settings: Application settings. Defaults to an in-memory store.

    Returns:
        Configured BaseStateStore implementation.
    """
    backend = "memory" if settings is None else settings.store_backend

    if backend == "memory":
        from transbatch.store.memory_store import MemoryStateStore
        return MemoryStateStore()

    if backend == "json":
        from transbatch.store.json_store import JsonStateStore
        return JsonStateStore(root=settings.store_root)

    if backend == "sqlite":
        from transbatch.store.sqlite_store import SqliteStateStore
        root = settings.store_root.expanduser()
        return SqliteStateStore(db_path=root / "transbatch_state.db")

    if backend == "redis":
        from transbatch.store.redis_store import RedisStateStore
        if not settings.store_redis_url:
            raise ValueError(
                "STORE_REDIS_URL must be set when STORE_BACKEND=redis"
            )
        return RedisStateStore(redis_url=settings.store_redis_url)

    raise ValueError(f"Unsupported store backend: {backend!r}")
