# src/weekcycle/planner/models.py

"""
Week / Day / Task data structures.

Ownership is a tree: a Week owns its 7 Days, a Day owns its Tasks.
Children point back to their parent by key only (week_key, day_key),
so there are no reference cycles.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import StrEnum

from ..calendar.weeks import day_key, days_of_week, week_key


class WeekStatus(StrEnum):
    PENDING = "pending"
    PRESENT = "present"
    PAST = "past"

    @classmethod
    def from_db(cls, raw: str | None) -> WeekStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


class DayStatus(StrEnum):
    EMPTY = "empty"
    DRAFT = "draft"
    EXECUTING = "executing"
    COMPLETED = "completed"
    EXPIRED = "expired"

    @classmethod
    def from_db(cls, raw: str | None) -> DayStatus:
        if not raw:
            return cls.EMPTY
        try:
            return cls(raw)
        except ValueError:
            return cls.EMPTY

    @property
    def is_terminal(self) -> bool:
        return self in (DayStatus.COMPLETED, DayStatus.EXPIRED)

    @property
    def counts_as_started(self) -> bool:
        return self in (DayStatus.EXECUTING, DayStatus.COMPLETED, DayStatus.EXPIRED)


class TaskZone(StrEnum):
    PLANNING = "planning"
    FOCUS = "focus"
    FROZEN = "frozen"
    DONE = "done"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskZone:
        if not raw:
            return cls.PLANNING
        try:
            return cls(raw)
        except ValueError:
            return cls.PLANNING


OPEN_ZONES = (TaskZone.PLANNING, TaskZone.FOCUS, TaskZone.FROZEN)


class TaskCategory(StrEnum):
    REGULAR = "regular"
    DEADLINE = "deadline"
    LEISURE = "leisure"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskCategory:
        if not raw:
            return cls.REGULAR
        try:
            return cls(raw)
        except ValueError:
            return cls.REGULAR


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass(slots=True)
class Attachment:
    file_name: str
    file_type: str  # e.g. "image/jpeg", "application/pdf"
    data: bytes | None = None
    attachment_id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=datetime.now)


@dataclass(slots=True)
class Task:
    task_id: str
    day_key: str
    title: str
    order: int
    zone: TaskZone = TaskZone.PLANNING
    category: TaskCategory = TaskCategory.REGULAR
    description: str = ""

    started_at: datetime | None = None
    ended_at: datetime | None = None
    completed_order: int = 0

    steps: list[str] = field(default_factory=list)
    attachments: list[Attachment] = field(default_factory=list)

    @property
    def task_number(self) -> str:
        return f"T{self.order:02d}"


@dataclass(slots=True)
class Day:
    day_key: str
    week_key: str
    date: date
    status: DayStatus = DayStatus.EMPTY

    deadline_hour: int = 20
    deadline_minute: int = 0

    started_at: datetime | None = None
    closed_at: datetime | None = None
    expired_count: int = 0

    tasks: list[Task] = field(default_factory=list)

    @property
    def weekday_short(self) -> str:
        return self.date.strftime("%a")

    @property
    def planning_tasks(self) -> list[Task]:
        return sorted((t for t in self.tasks if t.zone == TaskZone.PLANNING), key=lambda t: t.order)

    @property
    def focus_task(self) -> Task | None:
        focus = [t for t in self.tasks if t.zone == TaskZone.FOCUS]
        return min(focus, key=lambda t: t.order) if focus else None

    @property
    def frozen_tasks(self) -> list[Task]:
        return sorted((t for t in self.tasks if t.zone == TaskZone.FROZEN), key=lambda t: t.order)

    @property
    def done_tasks(self) -> list[Task]:
        return sorted((t for t in self.tasks if t.zone == TaskZone.DONE), key=lambda t: t.completed_order)

    @property
    def focus_count(self) -> int:
        return sum(1 for t in self.tasks if t.zone == TaskZone.FOCUS)

    @property
    def has_single_focus(self) -> bool:
        return self.focus_count <= 1

    @property
    def open_task_count(self) -> int:
        """Tasks an expiry would discard from an executing day: focus (0/1) + frozen."""
        return (1 if self.focus_task is not None else 0) + len(self.frozen_tasks)

    def task(self, task_id: str) -> Task | None:
        for t in self.tasks:
            if t.task_id == task_id:
                return t
        return None


@dataclass(slots=True)
class Week:
    week_key: str
    start_date: date
    end_date: date
    status: WeekStatus = WeekStatus.PENDING

    days: list[Day] = field(default_factory=list)

    completed_count: int = 0
    expired_count: int = 0
    started_days: int = 0

    @property
    def week_number(self) -> int:
        return self.start_date.isocalendar().week

    def day(self, key: str) -> Day | None:
        for d in self.days:
            if d.day_key == key:
                return d
        return None


@dataclass(slots=True)
class Progress:
    """Process-wide counters; persisted by ProgressStore."""

    days_started: int = 0
    first_activation_date: date | None = None
    last_reconciled_date: date | None = None
    last_reconciled_at: datetime | None = None


def make_week(
    anchor: date | datetime,
    status: WeekStatus,
    *,
    deadline_hour: int = 20,
    deadline_minute: int = 0,
) -> Week:
    """Build a Week spanning the ISO week of `anchor`, with 7 empty days."""
    dates = days_of_week(anchor)
    key = week_key(dates[0])
    week = Week(
        week_key=key,
        start_date=dates[0],
        end_date=dates[0] + timedelta(days=6),
        status=status,
    )
    for d in dates:
        week.days.append(
            Day(
                day_key=day_key(d),
                week_key=key,
                date=d,
                status=DayStatus.EMPTY,
                deadline_hour=deadline_hour,
                deadline_minute=deadline_minute,
            )
        )
    return week
