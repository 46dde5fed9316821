from datetime import datetime, timedelta, timezone

import pytest

from capacity_scheduler.schemas.appointment import DateRange
from capacity_scheduler.services.exceptions import ValidationError
from capacity_scheduler.services.validation import (
    require,
    to_utc,
    validate_date_range,
    validate_range,
    validate_status,
    validate_transition,
)

START = datetime(2025, 6, 1, 13, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("minutes", [1, 30, 60 * 24])
def test_validate_range_accepts_ordered_pairs(minutes: int) -> None:
    start, end = validate_range(START, START + timedelta(minutes=minutes))
    assert start == START
    assert end - start == timedelta(minutes=minutes)


@pytest.mark.parametrize("minutes", [0, -1, -60])
def test_validate_range_rejects_empty_or_inverted(minutes: int) -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_range(START, START + timedelta(minutes=minutes))
    assert excinfo.value.code == "VALIDATION_ERROR"


def test_validate_range_normalises_strings_to_utc() -> None:
    start, end = validate_range("2025-06-01T09:00:00-04:00", "2025-06-01T14:00:00Z")

    assert start == START
    assert start.tzinfo == timezone.utc
    assert end == datetime(2025, 6, 1, 14, 0, tzinfo=timezone.utc)


def test_naive_values_are_read_as_utc() -> None:
    assert to_utc(datetime(2025, 6, 1, 13, 0)) == START


@pytest.mark.parametrize("value", ["", "next tuesday-ish", 42, None])
def test_invalid_instants_are_rejected(value) -> None:
    with pytest.raises(ValidationError):
        validate_range(value, START)


def test_validate_date_range_allows_equal_bounds() -> None:
    result = validate_date_range(DateRange(start=START, end=START))
    assert result.start == result.end == START


def test_validate_date_range_rejects_inverted_or_missing() -> None:
    with pytest.raises(ValidationError):
        validate_date_range(DateRange(start=START, end=START - timedelta(days=1)))
    with pytest.raises(ValidationError):
        validate_date_range(None)


def test_validate_status() -> None:
    assert validate_status("no_show") == "no_show"
    with pytest.raises(ValidationError, match="Invalid status: booked"):
        validate_status("booked")


def test_validate_transition_follows_graph() -> None:
    validate_transition("pending", "confirmed")
    validate_transition("confirmed", "no_show")
    validate_transition("completed", "completed")
    with pytest.raises(ValidationError):
        validate_transition("completed", "pending")
    with pytest.raises(ValidationError):
        validate_transition("cancelled", "confirmed")


def test_require_rejects_blank_values() -> None:
    require("rest-1001", "Business ID")
    with pytest.raises(ValidationError, match="User ID is required"):
        require("  ", "User ID")
