# tests/test_lifecycle.py

from __future__ import annotations

from datetime import datetime

import pytest

from weekcycle.core.errors import (
    CannotEditStartedDay,
    CannotStartEmptyDay,
    DayNotExecuting,
    DayNotFound,
    DeadlinePassed,
    FocusInvariantError,
    StoreError,
    TaskNotFound,
)
from weekcycle.core.events import EventKind
from weekcycle.planner.models import Attachment, DayStatus, TaskCategory, TaskZone
from weekcycle.planner.progress import ProgressStore

from .fakes import NOW


def test_full_day_add_start_complete(planner, state) -> None:
    day = planner.today()
    assert day.status == DayStatus.EMPTY

    a = planner.add_task("A")
    assert planner.today().status == DayStatus.DRAFT
    assert (a.order, a.zone) == (1, TaskZone.PLANNING)
    b = planner.add_task("B")
    assert b.order == 2

    planner.start_day()
    day = planner.today()
    assert day.status == DayStatus.EXECUTING
    assert day.started_at == NOW
    assert a.zone == TaskZone.FOCUS
    assert a.started_at == NOW
    assert b.zone == TaskZone.FROZEN
    assert planner.progress().days_started == 1

    assert planner.complete_focus_task() is a
    assert (a.zone, a.completed_order) == (TaskZone.DONE, 1)
    assert b.zone == TaskZone.FOCUS

    assert planner.complete_focus_task() is b
    assert (b.zone, b.completed_order) == (TaskZone.DONE, 2)
    assert day.status == DayStatus.COMPLETED
    assert day.closed_at == NOW
    assert [t.title for t in day.done_tasks] == ["A", "B"]
    assert state.alerts.pending() == []


def test_add_task_applies_defaults_and_details(planner) -> None:
    photo = Attachment(file_name="plan.png", file_type="image/png", data=b"\x89PNG")
    task = planner.add_task(
        "  Write report  ",
        "quarterly numbers",
        steps=["outline", "draft"],
        attachments=[photo],
    )
    assert task.title == "Write report"
    assert task.category == TaskCategory.REGULAR
    assert task.task_number == "T01"
    assert task.steps == ["outline", "draft"]
    assert task.attachments[0].file_name == "plan.png"

    leisure = planner.add_task("Walk", category="leisure")
    assert leisure.category == TaskCategory.LEISURE


def test_add_task_requires_title(planner) -> None:
    with pytest.raises(ValueError):
        planner.add_task("   ")
    assert planner.today().status == DayStatus.EMPTY


def test_operations_without_today_raise_day_not_found(state) -> None:
    with pytest.raises(DayNotFound):
        state.planner.add_task("A")
    with pytest.raises(DayNotFound):
        state.planner.start_day()


def test_start_day_rejects_empty_day(planner) -> None:
    with pytest.raises(CannotStartEmptyDay):
        planner.start_day()
    assert planner.today().status == DayStatus.EMPTY


def test_start_day_rejects_draft_without_tasks(planner) -> None:
    task = planner.add_task("A")
    planner.delete_task(task.task_id)
    assert planner.today().status == DayStatus.DRAFT
    with pytest.raises(CannotStartEmptyDay):
        planner.start_day()


def test_started_day_rejects_edits(planner) -> None:
    a = planner.add_task("A")
    planner.start_day()

    with pytest.raises(CannotEditStartedDay):
        planner.add_task("B")
    with pytest.raises(CannotEditStartedDay):
        planner.update_task(a.task_id, title="A2")
    with pytest.raises(CannotEditStartedDay):
        planner.delete_task(a.task_id)
    with pytest.raises(CannotEditStartedDay):
        planner.reorder_tasks([0], 1)
    with pytest.raises(CannotEditStartedDay):
        planner.start_day()


def test_complete_focus_requires_executing(planner) -> None:
    planner.add_task("A")
    with pytest.raises(DayNotExecuting):
        planner.complete_focus_task()


def test_update_task_changes_only_given_fields(planner) -> None:
    task = planner.add_task("A", "first", category=TaskCategory.DEADLINE)
    planner.update_task(task.task_id, title="A2", steps=["one"])
    assert task.title == "A2"
    assert task.description == "first"
    assert task.category == TaskCategory.DEADLINE
    assert task.steps == ["one"]

    with pytest.raises(TaskNotFound):
        planner.update_task("missing", title="x")


def test_delete_renumbers_remaining(planner) -> None:
    a = planner.add_task("A")
    b = planner.add_task("B")
    c = planner.add_task("C")

    planner.delete_task(b.task_id)
    day = planner.today()
    assert [(t.title, t.order) for t in day.planning_tasks] == [("A", 1), ("C", 2)]
    assert a.order == 1 and c.order == 2


def test_delete_tasks_by_position(planner) -> None:
    for title in ("A", "B", "C", "D"):
        planner.add_task(title)

    planner.delete_tasks([0, 2])
    assert [(t.title, t.order) for t in planner.today().planning_tasks] == [("B", 1), ("D", 2)]

    with pytest.raises(ValueError):
        planner.delete_tasks([5])


def test_reorder_moves_selected_before_destination(planner) -> None:
    for title in ("A", "B", "C", "D"):
        planner.add_task(title)

    planner.reorder_tasks([0, 2], 4)
    assert [(t.title, t.order) for t in planner.today().planning_tasks] == [
        ("B", 1),
        ("D", 2),
        ("A", 3),
        ("C", 4),
    ]

    planner.reorder_tasks([3], 0)
    assert [t.title for t in planner.today().planning_tasks] == ["C", "B", "D", "A"]


def test_start_day_after_deadline_expires_immediately(planner, state, clock) -> None:
    planner.add_task("A")
    planner.add_task("B")
    clock.set(NOW.replace(hour=21))

    day = planner.start_day()
    assert day.status == DayStatus.EXPIRED
    assert day.expired_count == 2
    assert day.tasks == []
    assert planner.progress().days_started == 1
    assert state.alerts.pending() == []


def test_change_deadline_on_draft_reschedules_alert(planner, state) -> None:
    planner.add_task("A")
    day = planner.change_deadline(18, 30)
    assert (day.deadline_hour, day.deadline_minute) == (18, 30)
    assert day.status == DayStatus.DRAFT

    (alert,) = state.alerts.pending()
    assert alert.deadline == datetime(2026, 10, 21, 18, 30)


def test_change_deadline_into_the_past_expires_executing_day(planner) -> None:
    planner.add_task("A")
    planner.add_task("B")
    planner.start_day()
    planner.complete_focus_task()

    day = planner.change_deadline(9, 0)
    assert day.status == DayStatus.EXPIRED
    assert day.expired_count == 1
    assert [t.title for t in day.tasks] == ["A"]


def test_change_deadline_after_deadline_passed_is_rejected(planner, clock) -> None:
    planner.add_task("A")
    planner.start_day()
    clock.set(NOW.replace(hour=20, minute=30))

    with pytest.raises(DeadlinePassed):
        planner.change_deadline(23, 0)
    day = planner.today()
    assert day.status == DayStatus.EXECUTING
    assert (day.deadline_hour, day.deadline_minute) == (20, 0)


def test_change_deadline_validates_time(planner) -> None:
    planner.add_task("A")
    with pytest.raises(ValueError):
        planner.change_deadline(24, 0)
    with pytest.raises(ValueError):
        planner.change_deadline(10, 60)


def test_change_deadline_on_empty_day_is_rejected(planner) -> None:
    with pytest.raises(CannotEditStartedDay):
        planner.change_deadline(18, 0)


def test_second_focus_task_is_refused(planner) -> None:
    planner.add_task("A")
    b = planner.add_task("B")
    planner.start_day()
    b.zone = TaskZone.FOCUS

    with pytest.raises(FocusInvariantError):
        planner.change_deadline(21, 0)
    day = planner.today()
    assert (day.deadline_hour, day.deadline_minute) == (20, 0)


def test_day_changes_are_published(planner) -> None:
    seen = []
    planner.events.subscribe(seen.append)

    planner.add_task("A")
    planner.start_day()

    assert [(e.kind, e.status) for e in seen] == [
        (EventKind.DAY_CHANGED, "draft"),
        (EventKind.DAY_CHANGED, "executing"),
    ]
    assert {e.key for e in seen} == {"2026-10-21"}


def test_failed_progress_write_leaves_day_and_counter_untouched(planner, state, settings, monkeypatch) -> None:
    planner.add_task("A")

    def broken_put(progress) -> None:
        raise StoreError("disk full")

    monkeypatch.setattr(state.progress, "put", broken_put)
    with pytest.raises(StoreError):
        planner.start_day()
    assert state.progress.get().days_started == 0
    assert planner.today().status == DayStatus.DRAFT

    monkeypatch.undo()
    planner.start_day()
    assert state.progress.get().days_started == 1
    assert ProgressStore(settings.progress_path).get().days_started == 1
