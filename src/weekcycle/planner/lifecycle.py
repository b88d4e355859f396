# src/weekcycle/planner/lifecycle.py

from __future__ import annotations

"""
Day / Task lifecycle.

Day status:   empty -> draft -> executing -> completed | expired
Task zone:    planning -> focus -> done
              planning -> frozen -> focus -> done

Every operation works on today's Day. Lifecycle errors are raised before any
mutation; store failures propagate to the caller.
"""

import logging
from collections.abc import Iterable

from ..calendar.weeks import day_key
from ..config import PlannerOptions
from ..core.errors import (
    CannotEditStartedDay,
    CannotStartEmptyDay,
    DayNotExecuting,
    DayNotFound,
    DeadlinePassed,
    FocusInvariantError,
    TaskNotFound,
)
from ..core.events import EventBus, EventKind, PlannerEvent
from ..core.ports import Clock, EntityRepo, NotificationPort, ProgressRepo
from .expiry import expire, is_deadline_passed
from .models import Attachment, Day, DayStatus, Task, TaskCategory, TaskZone, new_id
from .ordering import move_items, renumber

logger = logging.getLogger(__name__)


def _clean_title(title: str) -> str:
    if not title or not title.strip():
        raise ValueError("title is required")
    return title.strip()


def _validate_time(hour: int, minute: int) -> None:
    if not 0 <= int(hour) <= 23:
        raise ValueError(f"hour must be 0..23, got {hour}")
    if not 0 <= int(minute) <= 59:
        raise ValueError(f"minute must be 0..59, got {minute}")


class DayLifecycle:
    def __init__(
            self,
            store: EntityRepo,
            clock: Clock,
            notifier: NotificationPort,
            progress: ProgressRepo,
            options: PlannerOptions | None = None,
            events: EventBus | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._notifier = notifier
        self._progress = progress
        self._options = options or PlannerOptions()
        self._events = events or EventBus()

    # ---- helpers ----

    def today(self) -> Day | None:
        return self._store.fetch_day(day_key(self._clock.today()))

    def _require_today(self) -> Day:
        key = day_key(self._clock.today())
        day = self._store.fetch_day(key)
        if day is None:
            raise DayNotFound(key)
        if not day.has_single_focus:
            raise FocusInvariantError(day.day_key, day.focus_count)
        return day

    def _require_draft(self) -> Day:
        day = self._require_today()
        if day.status != DayStatus.DRAFT:
            raise CannotEditStartedDay()
        return day

    @staticmethod
    def _require_planning_task(day: Day, task_id: str) -> Task:
        task = day.task(task_id)
        if task is None or task.zone != TaskZone.PLANNING:
            raise TaskNotFound(task_id)
        return task

    def _commit(self, day: Day) -> None:
        self._store.save()
        self._events.publish(PlannerEvent(EventKind.DAY_CHANGED, day.day_key, day.status.value))

    def _category(self, category: TaskCategory | str | None) -> TaskCategory:
        if category is None:
            return TaskCategory.from_db(self._options.default_category)
        return TaskCategory(category)

    # ---- planning ----

    def add_task(
            self,
            title: str,
            description: str = "",
            category: TaskCategory | str | None = None,
            steps: Iterable[str] = (),
            attachments: Iterable[Attachment] = (),
    ) -> Task:
        day = self._require_today()
        if day.status not in (DayStatus.EMPTY, DayStatus.DRAFT):
            raise CannotEditStartedDay()

        planning = day.planning_tasks
        task = Task(
            task_id=new_id(),
            day_key=day.day_key,
            title=_clean_title(title),
            description=(description or "").strip(),
            category=self._category(category),
            order=(planning[-1].order if planning else 0) + 1,
            zone=TaskZone.PLANNING,
            steps=list(steps),
            attachments=list(attachments),
        )

        if day.status == DayStatus.EMPTY:
            day.status = DayStatus.DRAFT
            logger.info("Day %s -> draft", day.day_key)
        day.tasks.append(task)

        self._commit(day)
        logger.debug("Task added id=%s day=%s order=%s", task.task_id, day.day_key, task.order)
        return task

    def update_task(
            self,
            task_id: str,
            *,
            title: str | None = None,
            description: str | None = None,
            category: TaskCategory | str | None = None,
            steps: Iterable[str] | None = None,
            attachments: Iterable[Attachment] | None = None,
    ) -> Task:
        day = self._require_draft()
        task = self._require_planning_task(day, task_id)

        if title is not None:
            task.title = _clean_title(title)
        if description is not None:
            task.description = description.strip()
        if category is not None:
            task.category = TaskCategory(category)
        if steps is not None:
            task.steps = list(steps)
        if attachments is not None:
            task.attachments = list(attachments)

        self._commit(day)
        return task

    def delete_task(self, task_id: str) -> None:
        day = self._require_draft()
        task = self._require_planning_task(day, task_id)
        self._store.delete(task)
        renumber(day.planning_tasks)
        self._commit(day)
        logger.debug("Task deleted id=%s day=%s", task_id, day.day_key)

    def delete_tasks(self, positions: Iterable[int]) -> None:
        """Delete planning tasks by their 0-based position in planning order."""
        day = self._require_draft()
        planning = day.planning_tasks
        targets = sorted(set(positions))
        for i in targets:
            if not 0 <= i < len(planning):
                raise ValueError(f"position {i} out of range 0..{len(planning) - 1}")
        for i in targets:
            self._store.delete(planning[i])
        renumber(day.planning_tasks)
        self._commit(day)

    def reorder_tasks(self, from_indices: Iterable[int], to_index: int) -> list[Task]:
        day = self._require_draft()
        reordered = move_items(day.planning_tasks, from_indices, to_index)
        renumber(reordered)
        self._commit(day)
        return reordered

    # ---- execution ----

    def start_day(self) -> Day:
        day = self._require_today()
        if day.status == DayStatus.EMPTY:
            raise CannotStartEmptyDay()
        if day.status != DayStatus.DRAFT:
            raise CannotEditStartedDay()
        planning = day.planning_tasks
        if not planning:
            raise CannotStartEmptyDay()

        now = self._clock.now()
        if day.started_at is None:
            progress = self._progress.get()
            progress.days_started += 1
            self._progress.put(progress)

        day.status = DayStatus.EXECUTING
        day.started_at = now

        first, rest = planning[0], planning[1:]
        first.zone = TaskZone.FOCUS
        first.started_at = now
        for task in rest:
            task.zone = TaskZone.FROZEN

        logger.info("Day %s -> executing (focus=%s frozen=%s)", day.day_key, first.title, len(rest))

        if is_deadline_passed(day, now):
            expire(day, day.open_task_count, notifier=self._notifier)
        else:
            self._notifier.schedule_deadline_alert(day)

        self._commit(day)
        return day

    def complete_focus_task(self) -> Task | None:
        day = self._require_today()
        if day.status != DayStatus.EXECUTING:
            raise DayNotExecuting(day.status.value)

        focus = day.focus_task
        if focus is None:
            return None

        now = self._clock.now()
        focus.completed_order = len(day.done_tasks) + 1
        focus.zone = TaskZone.DONE
        focus.ended_at = now

        frozen = day.frozen_tasks
        if frozen:
            nxt = frozen[0]
            nxt.zone = TaskZone.FOCUS
            nxt.started_at = now
            logger.info("Day %s focus -> %s", day.day_key, nxt.title)
        else:
            day.status = DayStatus.COMPLETED
            day.closed_at = now
            self._notifier.cancel_deadline_alert(day)
            logger.info("Day %s -> completed (%s done)", day.day_key, len(day.done_tasks))

        self._commit(day)
        return focus

    def change_deadline(self, hour: int, minute: int) -> Day:
        _validate_time(hour, minute)
        day = self._require_today()
        if day.status not in (DayStatus.DRAFT, DayStatus.EXECUTING):
            raise CannotEditStartedDay("Deadline can only change while the day is draft or executing.")

        now = self._clock.now()
        if is_deadline_passed(day, now):
            raise DeadlinePassed()

        day.deadline_hour = int(hour)
        day.deadline_minute = int(minute)
        logger.info("Day %s deadline -> %02d:%02d", day.day_key, day.deadline_hour, day.deadline_minute)

        if day.status == DayStatus.EXECUTING and is_deadline_passed(day, now):
            expire(day, day.open_task_count, notifier=self._notifier)
        else:
            self._notifier.schedule_deadline_alert(day)

        self._commit(day)
        return day

