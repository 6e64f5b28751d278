# src/batch/retry_policy.py - v2
"""File-level retry policy.

Taxonomy:
- validation: invalid URL, unsupported format, not found, no permission.
  Never retried.
- transient: upstream API error, network error, timeout, temporary
  unavailability. Retried while retry_count < max_retry_attempts.
- unclassified: retried exactly once (only when retry_count == 0).

Collaborators should report a structured ErrorKind. classify_error() maps
message text to a kind for collaborators that only return a message, and is
applied at that boundary only.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from transbatch.batch.models import ErrorKind

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRY_ATTEMPTS = 3

# Lowercased substrings. Japanese markers cover messages from Workspace-side
# collaborators.
VALIDATION_MARKERS: tuple[str, ...] = (
    "invalid url",
    "unsupported",
    "not found",
    "permission",
    "forbidden",
    "access denied",
    "ファイルが見つかりません",
    "見つかりません",
    "無効なurl",
    "サポートされていない",
    "権限",
    "アクセス権",
)
TRANSIENT_MARKERS: tuple[str, ...] = (
    "timeout",
    "timed out",
    "network",
    "connection",
    "api error",
    "rate limit",
    "temporarily unavailable",
    "service unavailable",
    "タイムアウト",
    "ネットワーク",
    "apiエラー",
    "一時的",
)

# HTTP status codes, matched only as standalone numbers.
VALIDATION_STATUS = re.compile(r"(?<!\d)40[34](?!\d)")
TRANSIENT_STATUS = re.compile(r"(?<!\d)(?:429|50[0234])(?!\d)")


def classify_error(message: str | None) -> ErrorKind:
    """Classify a human-readable error message."""
    if not message:
        return ErrorKind.UNCLASSIFIED
    text = message.lower()
    if VALIDATION_STATUS.search(text) or any(m in text for m in VALIDATION_MARKERS):
        return ErrorKind.VALIDATION
    if TRANSIENT_STATUS.search(text) or any(m in text for m in TRANSIENT_MARKERS):
        return ErrorKind.TRANSIENT
    return ErrorKind.UNCLASSIFIED


def resolve_error_kind(
    kind: ErrorKind | str | None, message: str | None
) -> ErrorKind:
    """Prefer a structured kind; fall back to message classification."""
    if kind is not None:
        try:
            return ErrorKind(kind)
        except ValueError:
            logger.debug("Unknown error kind %r, classifying from message", kind)
    return classify_error(message)


@dataclass(frozen=True)
class RetryPolicy:
    """Decides whether a failed file goes back to the queue."""

    max_retry_attempts: int = DEFAULT_MAX_RETRY_ATTEMPTS

    def should_retry(self, kind: ErrorKind, retry_count: int) -> bool:
        """retry_count is the number of retries already spent on the file."""
        if kind == ErrorKind.VALIDATION:
            return False
        if kind == ErrorKind.TRANSIENT:
            return retry_count < self.max_retry_attempts
        return retry_count == 0 and self.max_retry_attempts > 0
