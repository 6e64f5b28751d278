# src/store/models.py - v1
"""State store models: versioned, TTL-bounded records."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from pydantic import BaseModel, Field


class StoredRecord(BaseModel):
    """A single record held by a state store.

    ``version`` starts at 1 and grows by one on every write; it is the token
    used by compare_and_set.
    """

    key: str
    value: dict[str, Any] = Field(default_factory=dict)
    version: int = 1
    updated_at: datetime
    expires_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now


def expiry_from_ttl(now: datetime, ttl_seconds: int | None) -> datetime | None:
    """Absolute expiry for a TTL in seconds (None = never expires)."""
    if ttl_seconds is None:
        return None
    return now + timedelta(seconds=ttl_seconds)
