"""User-facing summaries of a batch outcome."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from image_converter.application.results import BatchOutcome


class NotificationKind(StrEnum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
    EMPTY = "empty"


@dataclass(frozen=True)
class Notification:
    """Summary of a batch suitable for an alert dialog or terminal output."""

    kind: NotificationKind
    title: str
    message: str
    details: list[str] = field(default_factory=list)


def summarize(outcome: BatchOutcome | None) -> Notification:
    """Classify an outcome into one of four notification states."""
    if outcome is None or outcome.total == 0:
        return Notification(
            kind=NotificationKind.EMPTY,
            title="No files converted",
            message="Server returned no results.",
        )
    succeeded = len(outcome.successes)
    failed = len(outcome.failures)
    details = [f"{item.source_name}: {item.message}" for item in outcome.failures]
    if failed and succeeded:
        return Notification(
            kind=NotificationKind.PARTIAL,
            title="Some completed, some failed",
            message=f"{succeeded} file(s) ready, {failed} failed.",
            details=details,
        )
    if failed:
        return Notification(
            kind=NotificationKind.FAILED,
            title="Conversion Failed",
            message=f"All {failed} file(s) failed.",
            details=details,
        )
    return Notification(
        kind=NotificationKind.SUCCESS,
        title="Conversion Successful!",
        message=f"{succeeded} file(s) ready.",
    )
