# src/config/settings.py - v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for store backend, retry limits, health thresholds,
term matching and quality gate parameters, queue limits and logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === State store ===
    store_backend: Literal["memory", "json", "sqlite", "redis"] = "json"
    store_root: Path = Path("~/.transbatch/state")
    store_redis_url: str = ""
    store_ttl_seconds: int = 21_600

    # === Retry ===
    max_retry_attempts: int = 3

    # === Health check / auto-recovery ===
    stale_threshold_minutes: int = 30
    high_error_rate: float = 0.5
    high_error_min_processed: int = 3
    retry_storm_threshold: int = 3
    auto_recovery_max_failed: int = 3

    # === Term matching ===
    partial_min_length: int = 3
    fuzzy_threshold: float = 0.8

    # === Quality gate ===
    quality_gate_threshold: float = 0.8
    quality_gate_write_chunk_size: int = 50

    # === Task queue ===
    queue_max_concurrent: int = 3
    queue_max_retry_attempts: int = 3

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("fuzzy_threshold", "quality_gate_threshold", "high_error_rate")
    @classmethod
    def validate_ratio(cls, v: float) -> float:  # noqa: N805
        """Ratios and thresholds live in [0, 1]."""
        if not 0.0 <= v <= 1.0:
            raise ValueError("value must be between 0.0 and 1.0")
        return v

    @field_validator("max_retry_attempts", "queue_max_retry_attempts")
    @classmethod
    def validate_retry_attempts(cls, v: int) -> int:  # noqa: N805
        if v < 0:
            raise ValueError("retry attempts must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.store_backend == "redis" and not self.store_redis_url:
            errors.append("STORE_REDIS_URL must be set when STORE_BACKEND=redis")

        if self.store_ttl_seconds <= 0:
            errors.append("STORE_TTL_SECONDS must be > 0")

        if self.queue_max_concurrent < 1:
            errors.append("QUEUE_MAX_CONCURRENT must be >= 1")

        if self.stale_threshold_minutes <= 0:
            errors.append("STALE_THRESHOLD_MINUTES must be > 0")

        if self.partial_min_length < 1:
            errors.append("PARTIAL_MIN_LENGTH must be >= 1")

        if self.quality_gate_write_chunk_size < 1:
            errors.append("QUALITY_GATE_WRITE_CHUNK_SIZE must be >= 1")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-batch config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
