# src/weekcycle/calendar/clock.py

from __future__ import annotations

from datetime import date, datetime, timedelta

from .weeks import week_key


class SystemClock:
    """Wall-clock time in the device-local zone."""

    def now(self) -> datetime:
        return datetime.now()

    def today(self) -> date:
        return self.now().date()

    def current_week_key(self) -> str:
        return week_key(self.now())


class FixedClock:
    """
    Clock frozen at a given instant.

    Used by tests and demos; move it explicitly with set() / advance().
    """

    def __init__(self, instant: datetime) -> None:
        self._now = instant

    def now(self) -> datetime:
        return self._now

    def today(self) -> date:
        return self._now.date()

    def current_week_key(self) -> str:
        return week_key(self._now)

    def set(self, instant: datetime) -> None:
        self._now = instant

    def advance(self, **delta: float) -> datetime:
        self._now = self._now + timedelta(**delta)
        return self._now
