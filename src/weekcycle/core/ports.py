# src/weekcycle/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage/clock/notification providers swappable and makes testing easier.
"""

from collections.abc import Callable
from datetime import date, datetime
from typing import TYPE_CHECKING, Awaitable, Protocol

if TYPE_CHECKING:
    from ..planner.models import Day, Progress, Task, Week, WeekStatus


class Clock(Protocol):
    def now(self) -> datetime: ...
    def today(self) -> date: ...
    def current_week_key(self) -> str: ...


class EntityRepo(Protocol):
    """
    Persisted Week/Day/Task graph.

    Mutations on returned objects are in-memory until save().
    Every method may raise StoreError.
    """

    def fetch_week(self, week_key: str) -> Week | None: ...

    def fetch_weeks(
            self,
            predicate: Callable[[Week], bool] | None = None,
            *,
            status: WeekStatus | None = None,
    ) -> list[Week]: ...

    def fetch_day(self, day_key: str) -> Day | None: ...
    def insert(self, week: Week) -> None: ...
    def delete(self, entity: Week | Task) -> None: ...
    def save(self) -> None: ...


class ProgressRepo(Protocol):
    def get(self) -> Progress: ...
    def put(self, progress: Progress) -> None: ...


class NotificationPort(Protocol):
    """Fire-and-forget deadline alerts; the core never reads a result."""

    def schedule_deadline_alert(self, day: Day) -> None: ...
    def cancel_deadline_alert(self, day: Day) -> None: ...


class OutboundMessenger(Protocol):
    """Connector-side port: how the ticker delivers due alerts to the user."""

    def send_text(self, *, text: str) -> Awaitable[None]: ...
