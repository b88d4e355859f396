# src/weekcycle/calendar/weeks.py

"""
ISO week arithmetic.

All values are device-local and naive. Weeks always start on Monday
(ISO-8601); a week belongs to the ISO year that contains its Thursday.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta

_WEEK_KEY_RE = re.compile(r"^(\d{4})-W(\d{2})$")


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def week_key(instant: date | datetime) -> str:
    """Return the ISO week identifier, e.g. '2026-W43'."""
    iso = _as_date(instant).isocalendar()
    return f"{iso.year:04d}-W{iso.week:02d}"


def day_key(instant: date | datetime) -> str:
    """Return the calendar day identifier, e.g. '2026-10-19'."""
    return _as_date(instant).strftime("%Y-%m-%d")


def week_range(instant: date | datetime) -> tuple[date, date]:
    """Monday of the ISO week containing `instant`, and the Sunday six days later."""
    d = _as_date(instant)
    start = d - timedelta(days=d.weekday())
    return start, start + timedelta(days=6)


def days_of_week(instant: date | datetime) -> list[date]:
    start, _ = week_range(instant)
    return [start + timedelta(days=offset) for offset in range(7)]


def parse_week_key(key: str) -> date:
    """
    Return the Monday of the week named by `key`.

    Raises ValueError for a malformed key or a week number the ISO year does not have.
    """
    m = _WEEK_KEY_RE.match((key or "").strip().upper())
    if not m:
        raise ValueError(f"Invalid week key: {key!r} (expected YYYY-Www)")
    year, week = int(m.group(1)), int(m.group(2))
    try:
        return date.fromisocalendar(year, week, 1)
    except ValueError as e:
        raise ValueError(f"Week {week} is out of range for {year}") from e


def start_of_day(instant: date | datetime) -> datetime:
    return datetime.combine(_as_date(instant), time.min)


def deadline_instant(day_date: date, hour: int, minute: int) -> datetime:
    return datetime.combine(day_date, time(hour=hour, minute=minute, second=0))
