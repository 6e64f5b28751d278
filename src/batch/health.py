# src/batch/health.py - v1
"""Batch health evaluation.

Three independent signals:
- stale: batch is processing but nothing was saved for a while
- high_error_rate: too many processed files failed
- retry_storm: too many files waiting for a retry

0 issues -> healthy, up to 2 -> warning, more -> unhealthy.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from transbatch.batch.models import Batch, BatchStatus, HealthIssue, HealthReport


@dataclass(frozen=True)
class HealthThresholds:
    stale_after: timedelta = timedelta(minutes=30)
    high_error_rate: float = 0.5
    high_error_min_processed: int = 3
    retry_storm: int = 3
    warning_max_issues: int = 2


def is_stale(batch: Batch, now: datetime, thresholds: HealthThresholds) -> bool:
    return (
        batch.status == BatchStatus.PROCESSING
        and now - batch.last_updated > thresholds.stale_after
    )


def evaluate_health(
    batch: Batch, now: datetime, thresholds: HealthThresholds
) -> HealthReport:
    """Build a HealthReport for batch as of now."""
    issues: list[HealthIssue] = []

    if is_stale(batch, now, thresholds):
        idle_minutes = (now - batch.last_updated).total_seconds() / 60
        issues.append(
            HealthIssue(
                code="stale",
                message=f"No progress for {idle_minutes:.0f} minutes",
            )
        )

    processed = batch.processed_files
    if processed > thresholds.high_error_min_processed:
        rate = batch.failed_files / processed
        if rate > thresholds.high_error_rate:
            issues.append(
                HealthIssue(
                    code="high_error_rate",
                    message=f"{batch.failed_files}/{processed} processed files failed ({rate:.0%})",
                )
            )

    if batch.retrying_files > thresholds.retry_storm:
        issues.append(
            HealthIssue(
                code="retry_storm",
                message=f"{batch.retrying_files} files waiting for retry",
            )
        )

    if not issues:
        verdict = "healthy"
    elif len(issues) <= thresholds.warning_max_issues:
        verdict = "warning"
    else:
        verdict = "unhealthy"

    return HealthReport(
        status=verdict,
        message="; ".join(i.message for i in issues) or "No issues detected",
        batch_id=batch.batch_id,
        issues=issues,
        checked_at=now,
    )
