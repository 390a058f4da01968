# src/taskmaster/core/clock.py

"""
Clock implementation and tolerant date/time parsing.

Parsing never raises: stored data may come from older versions or be hand-edited,
and list ordering / deadline math must stay total over every stored record.
Unparsable values map to None (optional fields) or to the epoch sentinel.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Any

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1)
EPOCH_DATE = EPOCH.date()

_TIME_FORMATS = ("%H:%M", "%H:%M:%S", "%I:%M %p", "%I:%M%p")


class SystemClock:
    """Local wall-clock time (naive datetime)."""

    def now(self) -> datetime:
        return datetime.now()


def format_date(d: date) -> str:
    return d.strftime("%Y-%m-%d")


def parse_date(value: Any) -> date | None:
    """
    Parse a calendar date.

    Accepts date/datetime objects, "YYYY-MM-DD" and full ISO-8601 timestamps.
    Timezone-aware timestamps (e.g. "2024-05-01T22:00:00.000Z") are converted
    to local time first, so the calendar date matches what the user picked.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone().replace(tzinfo=None)
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    raw = value.strip()
    if not raw:
        return None

    try:
        dt = datetime.fromisoformat(raw)
    except ValueError:
        logger.debug("Unparsable date value %r", raw)
        return None

    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt.date()


def parse_time_of_day(value: Any) -> time | None:
    """Parse "HH:MM" (24h) or "h:mm AM/PM"."""
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        return None

    raw = value.strip().upper()
    if not raw:
        return None

    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(raw, fmt).time()
        except ValueError:
            continue

    logger.debug("Unparsable time value %r", value)
    return None


def combine_or_epoch(d: date | None, t: str | time | None) -> datetime:
    """Local datetime for date + time-of-day, or EPOCH if either part is missing/invalid."""
    tod = parse_time_of_day(t)
    if d is None or tod is None:
        return EPOCH
    return datetime.combine(d, tod)


def time_sort_key(value: str | None) -> time:
    """Sort key for optional time strings; missing/invalid values sort first (epoch)."""
    return parse_time_of_day(value) or EPOCH.time()
