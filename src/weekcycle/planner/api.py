# src/weekcycle/planner/api.py

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from datetime import date

from ..config import PlannerOptions
from ..core.events import EventBus
from ..core.ports import Clock, EntityRepo, NotificationPort, ProgressRepo
from .lifecycle import DayLifecycle
from .models import Attachment, Day, Progress, Task, TaskCategory, Week
from .rollover import ReconciliationReport, RolloverEngine

logger = logging.getLogger(__name__)


class Planner:
    """
    Single entry point for hosts: lifecycle operations + reconciliation.

    Every call holds one re-entrant lock, so the periodic tick, app activation
    and user actions never mutate the Week/Day/Task graph concurrently.
    """

    def __init__(
        self,
        store: EntityRepo,
        clock: Clock,
        notifier: NotificationPort,
        progress: ProgressRepo,
        options: PlannerOptions | None = None,
        events: EventBus | None = None,
    ) -> None:
        self.options = options or PlannerOptions()
        self.events = events or EventBus()
        self.clock = clock
        self._progress = progress
        self._lock = threading.RLock()
        self.lifecycle = DayLifecycle(store, clock, notifier, progress, self.options, self.events)
        self.rollover = RolloverEngine(store, clock, notifier, progress, self.options, self.events)

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    # ---- reconciliation ----

    def run_reconciliation_pass(self) -> ReconciliationReport:
        with self._lock:
            return self.rollover.run_reconciliation_pass()

    # ---- queries ----

    def today(self) -> Day | None:
        with self._lock:
            return self.lifecycle.today()

    def present_week(self) -> Week | None:
        with self._lock:
            return self.rollover.present_week()

    def pending_weeks(self, year: int | None = None, month: int | None = None) -> list[Week]:
        with self._lock:
            return self.rollover.pending_weeks(year, month)

    def past_weeks(self, year: int | None = None, month: int | None = None) -> list[Week]:
        with self._lock:
            return self.rollover.past_weeks(year, month)

    def progress(self) -> Progress:
        with self._lock:
            return self._progress.get()

    # ---- lifecycle ----

    def add_task(
        self,
        title: str,
        description: str = "",
        category: TaskCategory | str | None = None,
        steps: Iterable[str] = (),
        attachments: Iterable[Attachment] = (),
    ) -> Task:
        with self._lock:
            return self.lifecycle.add_task(title, description, category, steps, attachments)

    def update_task(self, task_id: str, **fields) -> Task:
        with self._lock:
            return self.lifecycle.update_task(task_id, **fields)

    def delete_task(self, task_id: str) -> None:
        with self._lock:
            self.lifecycle.delete_task(task_id)

    def delete_tasks(self, positions: Iterable[int]) -> None:
        with self._lock:
            self.lifecycle.delete_tasks(positions)

    def reorder_tasks(self, from_indices: Iterable[int], to_index: int) -> list[Task]:
        with self._lock:
            return self.lifecycle.reorder_tasks(from_indices, to_index)

    def start_day(self) -> Day:
        with self._lock:
            return self.lifecycle.start_day()

    def complete_focus_task(self) -> Task | None:
        with self._lock:
            return self.lifecycle.complete_focus_task()

    def change_deadline(self, hour: int, minute: int) -> Day:
        with self._lock:
            return self.lifecycle.change_deadline(hour, minute)

    def create_pending_week(self, start: date) -> Week:
        with self._lock:
            return self.rollover.create_pending_week(start)
