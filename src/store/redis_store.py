# src/store/redis_store.py - v1
"""Redis-based state store (STORE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Suitable for multi-instance deployments: TTL is native (SET EX) and
compare_and_set uses WATCH/MULTI optimistic transactions.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Callable

from transbatch.store.base_state_store import BaseStateStore, VersionConflictError
from transbatch.store.models import StoredRecord, expiry_from_ttl

logger = logging.getLogger(__name__)

_KEY_PREFIX = "transbatch:state:"


class RedisStateStore(BaseStateStore):
    """Redis-backed state store for distributed deployments."""

    def __init__(
        self, redis_url: str, clock: Callable[[], datetime] | None = None
    ) -> None:
        super().__init__(clock)
        try:
            import redis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._redis = redis
        self._client = redis.Redis.from_url(redis_url, decode_responses=True)

    async def get(self, key: str) -> StoredRecord | None:
        return self._decode(key, self._client.get(f"{_KEY_PREFIX}{key}"))

    async def put(
        self, key: str, value: dict[str, Any], ttl_seconds: int | None = None
    ) -> StoredRecord:
        current = await self.get(key)
        record = self._build(key, value, (current.version if current else 0) + 1, ttl_seconds)
        self._client.set(f"{_KEY_PREFIX}{key}", record.model_dump_json(), ex=ttl_seconds)
        return record

    async def compare_and_set(
        self,
        key: str,
        value: dict[str, Any],
        expected_version: int | None,
        ttl_seconds: int | None = None,
    ) -> StoredRecord:
        redis_key = f"{_KEY_PREFIX}{key}"
        with self._client.pipeline() as pipe:
            try:
                pipe.watch(redis_key)
                current = self._decode(key, pipe.get(redis_key))
                actual = current.version if current else None
                if actual != expected_version:
                    raise VersionConflictError(key, expected_version, actual)
                record = self._build(key, value, (actual or 0) + 1, ttl_seconds)
                pipe.multi()
                pipe.set(redis_key, record.model_dump_json(), ex=ttl_seconds)
                pipe.execute()
            except self._redis.WatchError as e:
                raise VersionConflictError(key, expected_version, None) from e
        return record

    async def delete(self, key: str) -> None:
        self._client.delete(f"{_KEY_PREFIX}{key}")

    def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()

    def _build(
        self, key: str, value: dict[str, Any], version: int, ttl_seconds: int | None
    ) -> StoredRecord:
        now = self.now()
        return StoredRecord(
            key=key,
            value=value,
            version=version,
            updated_at=now,
            expires_at=expiry_from_ttl(now, ttl_seconds),
        )

    def _decode(self, key: str, data: str | None) -> StoredRecord | None:
        if data is None:
            return None
        try:
            return StoredRecord(**json.loads(data))
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning("Failed to deserialize state record %s: %s", key, e)
            return None
