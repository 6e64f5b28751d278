# src/batch/errors.py - v1
"""Batch-level exceptions.

File-level failures never raise: they are recorded on the FileTask. These
exceptions cover whole-batch problems and are turned into structured
results by the API service.
"""

from __future__ import annotations


class BatchError(Exception):
    """Base class for batch orchestration errors."""

    status = "error"


class BatchNotFoundError(BatchError):
    """No live record for the batch id (unknown or expired)."""

    status = "not_found"

    def __init__(self, batch_id: str) -> None:
        self.batch_id = batch_id
        super().__init__(f"Batch {batch_id!r} not found")


class InvalidTransitionError(BatchError):
    """The requested operation is not allowed in the current batch status."""

    status = "invalid_state"

    def __init__(self, batch_id: str, current: str, operation: str) -> None:
        self.batch_id = batch_id
        self.current = current
        self.operation = operation
        super().__init__(f"Cannot {operation} batch {batch_id!r} while {current}")


class BatchValidationError(BatchError):
    """Batch input rejected before anything was stored."""


class ConcurrentModificationError(BatchError):
    """Another caller saved the batch between our read and write."""

    status = "conflict"

    def __init__(self, batch_id: str) -> None:
        self.batch_id = batch_id
        super().__init__(
            f"Batch {batch_id!r} was modified concurrently; re-read and retry"
        )


class CollaboratorMissingError(BatchError):
    """An operation needs a collaborator the orchestrator was built without."""

    def __init__(self, collaborator: str) -> None:
        self.collaborator = collaborator
        super().__init__(f"No {collaborator} configured for this orchestrator")
