"""Date and time-of-day normalization for booking slots.

The booking form sends a date (either ``YYYY-MM-DD`` or a full ISO-8601
timestamp as a browser serializes a ``Date``) and a time token in either
12-hour (``03:00 PM``) or 24-hour (``15:00``) form. Both are combined into
an absolute start/end pair in the event time zone, independent of where the
visitor is.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from strategy_booking.errors import FormatError
from strategy_booking.models import ResolvedSlot

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "Europe/London"
SESSION_DURATION_MINUTES = 30

_TWELVE_HOUR = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*(AM|PM)\s*$", re.IGNORECASE)
_TWENTY_FOUR_HOUR = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


def parse_time_token(token: str) -> tuple[int, int]:
    """Return ``(hour, minute)`` on a 24-hour clock.

    Raises FormatError when the token matches neither form or the parsed
    hour/minute fall outside a day. A 12-hour token must also use an hour
    from 1 to 12, so ``00:30 AM`` and ``13:00 PM`` are rejected rather than
    guessed at.
    """
    if not isinstance(token, str):
        raise FormatError(f"Invalid time format: {token!r}")

    match = _TWELVE_HOUR.match(token)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        meridiem = match.group(3).upper()
        if not 1 <= hour <= 12:
            raise FormatError(f"Invalid hour in 12-hour time: {token!r}")
        if meridiem == "PM" and hour < 12:
            hour += 12
        elif meridiem == "AM" and hour == 12:
            hour = 0
    else:
        match = _TWENTY_FOUR_HOUR.match(token)
        if not match:
            raise FormatError(
                f"Invalid time format: {token!r}. Expected HH:MM or HH:MM AM/PM"
            )
        hour, minute = int(match.group(1)), int(match.group(2))

    if not 0 <= hour <= 23:
        raise FormatError(f"Hour out of range in {token!r}")
    if not 0 <= minute <= 59:
        raise FormatError(f"Minute out of range in {token!r}")
    return hour, minute


def get_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise FormatError(f"Unknown time zone: {name!r}") from exc


def parse_date_value(value: date | datetime | str, tz: ZoneInfo | None = None) -> date:
    """Extract the calendar date the visitor picked.

    An aware timestamp is first moved into ``tz`` — a browser in London
    serializes local midnight on 10 June as ``2025-06-09T23:00:00.000Z``,
    which still means the 10th.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError as exc:
            raise FormatError(f"Invalid date: {value!r}") from exc
    else:
        raise FormatError(f"Invalid date: {value!r}")

    if parsed.tzinfo is not None and tz is not None:
        parsed = parsed.astimezone(tz)
    return parsed.date()


def resolve_slot(
    date_value: date | datetime | str,
    time_token: str,
    tz_name: str = DEFAULT_TIMEZONE,
    duration_minutes: int = SESSION_DURATION_MINUTES,
) -> ResolvedSlot:
    """Combine a date and time token into a ResolvedSlot in ``tz_name``.

    The duration is added in absolute time, so a session that spans a DST
    change still lasts exactly ``duration_minutes``. A wall-clock time that
    does not exist on that day (skipped by the spring-forward change) is a
    FormatError. An ambiguous one (repeated by the fall-back change) means
    its first occurrence.
    """
    zone = get_zone(tz_name)
    day = parse_date_value(date_value, zone)
    hour, minute = parse_time_token(time_token)

    start = datetime.combine(day, time(hour, minute, fold=0), tzinfo=zone)
    start_utc = start.astimezone(timezone.utc)
    if start_utc.astimezone(zone).replace(tzinfo=None) != start.replace(tzinfo=None):
        raise FormatError(
            f"{time_token!r} does not exist on {day.isoformat()} in {tz_name}"
        )
    end = (start_utc + timedelta(minutes=duration_minutes)).astimezone(zone)
    logger.debug("Resolved %s %s -> %s / %s", date_value, time_token, start, end)
    return ResolvedSlot(start=start, end=end)


def format_display_date(value: datetime | date) -> str:
    """``Tuesday, 10 June 2025``"""
    return f"{value:%A}, {value.day} {value:%B %Y}"


def format_display_time(value: datetime) -> str:
    """``03:00 PM``"""
    return value.strftime("%I:%M %p")
