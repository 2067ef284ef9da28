"""
Calendar-day expansion for backfill runs.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

from datasync.exceptions import InvalidDateError

DATE_FORMAT = "%Y-%m-%d"


def parse_date(value: date | str) -> date:
    """Parse a ``YYYY-MM-DD`` string (``date`` objects pass through)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or len(value.strip()) != 10:
        # strptime also accepts unpadded fields such as 2024-1-1
        raise InvalidDateError(value)
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError:
        raise InvalidDateError(value) from None


def expand_dates(start: date | str, end: date | str) -> list[str]:
    """
    Every calendar day from ``start`` to ``end`` inclusive, ascending.

    A start after the end gives an empty list rather than an error.

    Raises:
        InvalidDateError: either bound is not a YYYY-MM-DD date
    """
    current = parse_date(start)
    last = parse_date(end)
    days: list[str] = []
    while current <= last:
        days.append(current.isoformat())
        if current == last:
            # date.max has no successor
            break
        current += timedelta(days=1)
    return days
