"""Natural-language time parsing for the voice booking channel.

Phrases such as ``"tomorrow 10 AM"`` or ``"next Friday 3:30pm"`` are read
against the business's IANA timezone and converted into an absolute UTC
instant for storage.
"""

from __future__ import annotations

import logging
import os
import re
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import dateparser

from capacity_scheduler.services.exceptions import ParseError, ValidationError

logger = logging.getLogger(__name__)

_TIME_12H = re.compile(r"\b(\d{1,2})(?::(\d{2}))?\s*(am|pm|a\.m\.|p\.m\.)", re.I)
_TIME_24H = re.compile(r"\b(\d{1,2}):(\d{2})\b")
_MONTH_DAY = re.compile(r"\b(\d{1,2})[/\-](\d{1,2})\b")
_BARE_HOUR = re.compile(r"\b(\d{1,2})\b")
_WEEKDAYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")
_WEEKDAY = re.compile(r"\b(monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b")
_RELATIVE_DAY = re.compile(
    r"\b(today|tomorrow|monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b"
)

# Bare hours below this are read as afternoon ("at 3" means 3 PM).
_BUSINESS_DAY_START_HOUR = 7


def load_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationError(f"Unknown timezone: {name}", cause=exc) from exc


def local_timezone_name() -> str:
    """Return the runtime's local IANA zone name, or ``UTC`` when unknown."""

    local = datetime.now().astimezone().tzinfo
    candidate = getattr(local, "key", None) or os.environ.get("TZ", "").lstrip(":")
    if candidate:
        try:
            ZoneInfo(candidate)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Local timezone %r is not an IANA zone; using UTC", candidate)
        else:
            return candidate
    return "UTC"


def parse_natural_time_to_utc(
    text: str,
    timezone_name: str,
    *,
    now: Optional[datetime] = None,
) -> str:
    """Convert ``text`` read in ``timezone_name`` to an ISO-8601 UTC string."""

    if not text or not text.strip():
        raise ParseError(text or "")
    tz = load_timezone(timezone_name)
    base = (now or datetime.now(timezone.utc)).astimezone(tz)

    local = None
    low = text.lower()
    # Relative day plus clock time is resolved against the business-local "now".
    if _RELATIVE_DAY.search(low) and (_TIME_12H.search(low) or _TIME_24H.search(low)):
        local = _parse_with_patterns(text, tz, base)
    if local is None:
        local = _parse_with_dateparser(text, timezone_name, tz, base)
    if local is None:
        local = _parse_with_patterns(text, tz, base)
    if local is None:
        raise ParseError(text)

    return local.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_with_dateparser(
    text: str, timezone_name: str, tz: tzinfo, base: datetime
) -> Optional[datetime]:
    parsed = dateparser.parse(
        text.strip(),
        settings={
            "TIMEZONE": timezone_name,
            "TO_TIMEZONE": timezone_name,
            "RETURN_AS_TIMEZONE_AWARE": True,
            "PREFER_DATES_FROM": "future",
            "RELATIVE_BASE": base.replace(tzinfo=None),
        },
        languages=["en"],
    )
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=tz)
    return parsed.astimezone(tz)


def _parse_with_patterns(text: str, tz: tzinfo, base: datetime) -> Optional[datetime]:
    low = text.lower().strip()
    target = base.date()
    matched = False

    if "tomorrow" in low:
        target = target + timedelta(days=1)
        matched = True
    elif "today" in low:
        matched = True

    weekday_match = _WEEKDAY.search(low)
    if weekday_match:
        wanted = _WEEKDAYS.index(weekday_match.group(1)[:3])
        target = target + timedelta(days=(wanted - target.weekday()) % 7 or 7)
        matched = True

    date_match = _MONTH_DAY.search(low)
    if date_match:
        month, day = int(date_match.group(1)), int(date_match.group(2))
        try:
            target = target.replace(month=month, day=day)
        except ValueError:
            return None
        matched = True
        low = low[: date_match.start()] + low[date_match.end():]

    hour, minute = 0, 0
    m12 = _TIME_12H.search(low)
    m24 = _TIME_24H.search(low)
    bare = _BARE_HOUR.search(low)
    if m12:
        hour = int(m12.group(1))
        minute = int(m12.group(2)) if m12.group(2) else 0
        is_pm = m12.group(3).lower().startswith("p")
        if is_pm and hour != 12:
            hour += 12
        elif not is_pm and hour == 12:
            hour = 0
        matched = True
    elif m24:
        hour, minute = int(m24.group(1)), int(m24.group(2))
        matched = True
    elif bare:
        hour = int(bare.group(1))
        if hour < _BUSINESS_DAY_START_HOUR:
            hour += 12
        matched = True

    if not matched or hour > 23 or minute > 59:
        return None
    return datetime(target.year, target.month, target.day, hour, minute, tzinfo=tz)


def format_local_datetime(instant: datetime | str, timezone_name: str) -> str:
    """Render an instant as e.g. ``Tuesday, June 3, 2025 at 10:00 AM``."""

    if isinstance(instant, str):
        instant = datetime.fromisoformat(instant.replace("Z", "+00:00"))
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    local = instant.astimezone(load_timezone(timezone_name))
    hour = local.hour % 12 or 12
    return (
        f"{local:%A}, {local:%B} {local.day}, {local.year} "
        f"at {hour}:{local:%M} {'AM' if local.hour < 12 else 'PM'}"
    )
