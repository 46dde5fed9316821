"""Validation of instants, intervals and calendar ranges.

Only the internal consistency of an interval is enforced here. Whether a
booking in the past is acceptable is left to the caller (the voice agent makes
that call during the conversation).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Tuple

from capacity_scheduler.schemas.appointment import (
    APPOINTMENT_STATUSES,
    ALLOWED_TRANSITIONS,
    DateRange,
)
from capacity_scheduler.services.exceptions import ValidationError


def to_utc(value: Any, *, field: str = "time") -> datetime:
    """Coerce an ISO-8601 string or datetime into an aware UTC datetime.

    Naive values are taken to already be in UTC, matching how the store
    persists ``TIMESTAMP WITH TIME ZONE`` columns.
    """

    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            raise ValidationError(f"Invalid {field}: value is empty")
        try:
            value = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValidationError(f"Invalid {field}: {raw!r} is not an ISO-8601 instant", cause=exc) from exc
    if not isinstance(value, datetime):
        raise ValidationError(f"Invalid {field}: expected a datetime, got {type(value).__name__}")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def validate_range(start: Any, end: Any) -> Tuple[datetime, datetime]:
    """Return ``(start, end)`` in UTC, rejecting invalid or inverted intervals."""

    start_utc = to_utc(start, field="start time")
    end_utc = to_utc(end, field="end time")
    if start_utc >= end_utc:
        raise ValidationError("Invalid time range: start time must be before end time")
    return start_utc, end_utc


def validate_date_range(date_range: DateRange | None) -> DateRange:
    if date_range is None:
        raise ValidationError("Invalid date range: start date and end date are required")
    start = to_utc(date_range.start, field="start date")
    end = to_utc(date_range.end, field="end date")
    if start > end:
        raise ValidationError("Invalid date range: start date must be before or equal to end date")
    return DateRange(start=start, end=end)


def validate_status(status: Any) -> str:
    if status not in APPOINTMENT_STATUSES:
        raise ValidationError(
            f"Invalid status: {status}. Status must be one of: {', '.join(APPOINTMENT_STATUSES)}"
        )
    return status


def validate_transition(current: str, new: str) -> None:
    if new == current:
        return
    if new not in ALLOWED_TRANSITIONS.get(current, ()):
        raise ValidationError(f"Cannot change appointment status from {current} to {new}")


def require(value: Any, label: str) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{label} is required")
