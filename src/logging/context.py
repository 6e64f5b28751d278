# src/logging/context.py - v1
"""Contextual logging support: attach batch_id, file_index, task_id, step to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per API call.
_batch_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "batch_id", default=None
)
_file_index: contextvars.ContextVar[int | None] = contextvars.ContextVar(
    "file_index", default=None
)
_task_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "task_id", default=None
)
_step: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "step", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    batch_id: str | None = None
    file_index: int | None = None
    task_id: str | None = None
    step: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        batch_id=_batch_id.get(),
        file_index=_file_index.get(),
        task_id=_task_id.get(),
        step=_step.get(),
    )


def set_batch_context(batch_id: str, step: str | None = None) -> None:
    """Set batch-level context (called once per API operation)."""
    _batch_id.set(batch_id)
    _step.set(step)


def set_file_context(file_index: int | None, task_id: str | None = None) -> None:
    """Set file-level context (called when a file task is being worked on)."""
    _file_index.set(file_index)
    _task_id.set(task_id)


def clear_context() -> None:
    """Reset all context variables."""
    _batch_id.set(None)
    _file_index.set(None)
    _task_id.set(None)
    _step.set(None)
