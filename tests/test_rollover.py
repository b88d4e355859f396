# tests/test_rollover.py

from __future__ import annotations

from datetime import date, datetime

import pytest

from weekcycle.calendar.clock import FixedClock
from weekcycle.cli.bootstrap import create_initial_state
from weekcycle.config import PlannerOptions
from weekcycle.core.errors import StoreError, WeekAlreadyExists
from weekcycle.notifications.alerts import NullNotifier
from weekcycle.planner.models import DayStatus, TaskZone, WeekStatus, make_week
from weekcycle.planner.progress import ProgressStore
from weekcycle.planner.rollover import RolloverEngine
from weekcycle.planner.store import PlannerStore

from .fakes import MONDAY, NOW, FlakyStore, RecordingNotifier


@pytest.fixture()
def monday_state(state, clock):
    """State activated on Monday 2026-10-19 09:00."""
    clock.set(MONDAY)
    state.planner.run_reconciliation_pass()
    return state


def _at(day: int, hour: int = 10) -> datetime:
    return datetime(2026, 10, day, hour, 0)


def _present_keys(planner) -> list[str]:
    return [w.week_key for w in planner.rollover._store.fetch_weeks(status=WeekStatus.PRESENT)]


def test_first_activation_creates_present_week(state) -> None:
    report = state.planner.run_reconciliation_pass()

    assert report.created_week == "2026-W43"
    assert report.ok
    week = state.planner.present_week()
    assert week.week_key == "2026-W43"
    assert [d.day_key for d in week.days][0] == "2026-10-19"
    assert len(week.days) == 7
    assert all(d.status == DayStatus.EMPTY for d in week.days)

    progress = state.planner.progress()
    assert progress.first_activation_date == NOW.date()
    assert progress.last_reconciled_date == NOW.date()
    assert progress.last_reconciled_at == NOW


def test_new_days_use_configured_deadline(settings, clock) -> None:
    settings.planner = PlannerOptions(default_deadline_hour=18, default_deadline_minute=45)
    state = create_initial_state(settings=settings, clock=clock)
    state.planner.run_reconciliation_pass()

    day = state.planner.today()
    assert (day.deadline_hour, day.deadline_minute) == (18, 45)


def test_pass_is_idempotent(planner) -> None:
    planner.add_task("A")
    report = planner.run_reconciliation_pass()

    assert report.expired_days == []
    assert report.finalized_weeks == []
    assert report.created_week is None
    assert report.promoted_week is None
    assert _present_keys(planner) == ["2026-W43"]
    assert planner.today().status == DayStatus.DRAFT


def test_missed_draft_days_expire_with_zero_count(monday_state, clock) -> None:
    planner = monday_state.planner
    for day in (19, 20, 21):
        clock.set(_at(day))
        planner.add_task(f"task {day}")

    clock.set(_at(22))
    report = planner.run_reconciliation_pass()

    assert report.expired_days == ["2026-10-19", "2026-10-20", "2026-10-21"]
    week = planner.present_week()
    for key in report.expired_days:
        day = week.day(key)
        assert day.status == DayStatus.EXPIRED
        assert day.expired_count == 0
        assert day.tasks == []
    assert week.day("2026-10-22").status == DayStatus.EMPTY
    assert planner.progress().last_reconciled_date == date(2026, 10, 22)


def test_missed_executing_day_counts_open_tasks_and_keeps_done(monday_state, clock) -> None:
    planner = monday_state.planner
    clock.set(_at(19))
    for title in ("A", "B", "C"):
        planner.add_task(title)
    planner.start_day()
    planner.complete_focus_task()

    clock.set(_at(21))
    report = planner.run_reconciliation_pass()

    day = planner.present_week().day("2026-10-19")
    assert report.expired_days == ["2026-10-19"]
    assert day.status == DayStatus.EXPIRED
    assert day.expired_count == 2
    assert [(t.title, t.zone) for t in day.tasks] == [("A", TaskZone.DONE)]
    assert monday_state.alerts.pending() == []


def test_completed_day_is_left_alone(monday_state, clock) -> None:
    planner = monday_state.planner
    planner.add_task("A")
    planner.start_day()
    planner.complete_focus_task()

    clock.set(_at(20))
    report = planner.run_reconciliation_pass()

    assert report.expired_days == []
    assert planner.present_week().day("2026-10-19").status == DayStatus.COMPLETED


def test_deadline_sweep_expires_today(planner, state) -> None:
    planner.add_task("A")
    planner.add_task("B")
    planner.start_day()
    day = planner.today()
    day.deadline_hour, day.deadline_minute = 0, 0

    report = planner.run_reconciliation_pass()

    assert report.deadline_expired
    assert day.status == DayStatus.EXPIRED
    assert day.expired_count == 2
    assert state.alerts.pending() == []


def test_deadline_sweep_ignores_future_deadline(planner) -> None:
    planner.add_task("A")
    planner.start_day()

    report = planner.run_reconciliation_pass()
    assert not report.deadline_expired
    assert planner.today().status == DayStatus.EXECUTING


def test_week_rollover_finalizes_and_creates(monday_state, clock) -> None:
    planner = monday_state.planner
    # Mon: two tasks done. Tue: left executing. Wed: left in draft.
    planner.add_task("A")
    planner.add_task("B")
    planner.start_day()
    planner.complete_focus_task()
    planner.complete_focus_task()
    clock.set(_at(20))
    planner.add_task("C")
    planner.start_day()
    clock.set(_at(21))
    planner.add_task("D")

    clock.set(_at(27))
    report = planner.run_reconciliation_pass()

    assert report.expired_days == ["2026-10-20", "2026-10-21"]
    assert report.finalized_weeks == ["2026-W43"]
    assert report.created_week == "2026-W44"
    assert _present_keys(planner) == ["2026-W44"]

    (past,) = planner.past_weeks()
    assert past.week_key == "2026-W43"
    assert past.status == WeekStatus.PAST
    assert past.completed_count == 2
    assert past.expired_count == 1
    assert past.started_days == 3


def test_pending_week_is_promoted(monday_state, clock) -> None:
    planner = monday_state.planner
    pending = planner.create_pending_week(date(2026, 10, 28))
    assert pending.week_key == "2026-W44"
    assert pending.status == WeekStatus.PENDING
    assert [w.week_key for w in planner.pending_weeks()] == ["2026-W44"]

    clock.set(_at(28))
    report = planner.run_reconciliation_pass()

    assert report.promoted_week == "2026-W44"
    assert report.created_week is None
    assert planner.present_week() is pending
    assert pending.status == WeekStatus.PRESENT
    assert planner.pending_weeks() == []


def test_extra_present_weeks_are_finalized(planner, state) -> None:
    state.store.insert(make_week(date(2026, 10, 5), WeekStatus.PRESENT))
    state.store.save()

    report = planner.run_reconciliation_pass()

    assert report.finalized_weeks == ["2026-W41"]
    assert _present_keys(planner) == ["2026-W43"]
    assert state.store.fetch_week("2026-W41").status == WeekStatus.PAST


def test_stale_present_weeks_collapse_to_current(state) -> None:
    state.store.insert(make_week(date(2026, 10, 5), WeekStatus.PRESENT))
    state.store.insert(make_week(date(2026, 10, 12), WeekStatus.PRESENT))
    state.store.save()

    report = state.planner.run_reconciliation_pass()

    assert sorted(report.finalized_weeks) == ["2026-W41", "2026-W42"]
    assert report.created_week == "2026-W43"
    assert _present_keys(state.planner) == ["2026-W43"]


def test_missed_day_failure_holds_watermark(monday_state, clock) -> None:
    planner = monday_state.planner
    clock.set(_at(19))
    planner.add_task("Mon")
    clock.set(_at(20))
    planner.add_task("Tue")
    clock.set(_at(22))

    flaky = FlakyStore(monday_state.store)
    flaky.fail_days.add("2026-10-20")
    engine = RolloverEngine(flaky, clock, monday_state.alerts, monday_state.progress)

    report = engine.run_reconciliation_pass()
    assert report.expired_days == ["2026-10-19"]
    assert report.failures == ["2026-10-20"]
    assert report.watermark == date(2026, 10, 20)
    assert monday_state.progress.get().last_reconciled_date == date(2026, 10, 20)
    assert monday_state.store.fetch_day("2026-10-20").status == DayStatus.DRAFT

    flaky.fail_days.clear()
    retry = engine.run_reconciliation_pass()
    assert retry.ok
    assert retry.expired_days == ["2026-10-20"]
    assert retry.watermark == date(2026, 10, 22)


def test_save_failure_does_not_advance_watermark(monday_state, clock, settings) -> None:
    planner = monday_state.planner
    planner.add_task("Mon")
    clock.set(_at(20))

    flaky = FlakyStore(monday_state.store)
    flaky.fail_save = True
    engine = RolloverEngine(flaky, clock, monday_state.alerts, monday_state.progress)

    report = engine.run_reconciliation_pass()
    assert "save" in report.failures
    assert report.watermark is None
    assert monday_state.progress.get().last_reconciled_date == date(2026, 10, 19)

    flaky.fail_save = False
    retry = engine.run_reconciliation_pass()
    assert retry.ok
    assert retry.watermark == date(2026, 10, 20)

    reopened = PlannerStore(settings.db_path)
    assert reopened.fetch_day("2026-10-19").status == DayStatus.EXPIRED


def test_create_pending_week_rejects_current_and_duplicates(planner) -> None:
    with pytest.raises(ValueError):
        planner.create_pending_week(date(2026, 10, 20))
    with pytest.raises(ValueError):
        planner.create_pending_week(date(2026, 10, 12))

    planner.create_pending_week(date(2026, 11, 2))
    with pytest.raises(WeekAlreadyExists):
        planner.create_pending_week(date(2026, 11, 5))


def test_past_weeks_filter_by_month(tmp_path) -> None:
    clock = FixedClock(datetime(2026, 11, 18, 10, 0))
    store = PlannerStore(tmp_path / "planner.sqlite3")
    for start in (date(2026, 9, 28), date(2026, 10, 5), date(2026, 10, 26), date(2026, 11, 2)):
        store.insert(make_week(start, WeekStatus.PAST))
    store.save()
    engine = RolloverEngine(store, clock, NullNotifier(), ProgressStore(tmp_path / "progress.json"))

    assert [w.week_key for w in engine.past_weeks()] == ["2026-W40", "2026-W41", "2026-W44", "2026-W45"]
    assert [w.week_key for w in engine.past_weeks(2026, 10)] == ["2026-W41", "2026-W44"]
    assert engine.past_weeks(2025, 10) == []


def test_expiry_cancels_scheduled_alert(tmp_path, clock) -> None:
    store = PlannerStore(tmp_path / "planner.sqlite3")
    notifier = RecordingNotifier()
    engine = RolloverEngine(store, clock, notifier, ProgressStore(tmp_path / "progress.json"))
    engine.run_reconciliation_pass()

    day = store.fetch_day("2026-10-21")
    day.status = DayStatus.EXECUTING
    day.deadline_hour = 9
    engine.run_reconciliation_pass()

    assert notifier.cancelled == ["2026-10-21"]


def test_progress_write_failure_keeps_old_watermark(monday_state, clock, monkeypatch) -> None:
    planner = monday_state.planner
    planner.add_task("Mon")
    clock.set(_at(20))

    def broken_put(progress) -> None:
        raise StoreError("disk full")

    monkeypatch.setattr(monday_state.progress, "put", broken_put)
    report = planner.run_reconciliation_pass()

    assert "progress" in report.failures
    assert report.expired_days == ["2026-10-19"]
    assert report.watermark is None
    assert monday_state.progress.get().last_reconciled_date == date(2026, 10, 19)


def test_first_activation_survives_progress_write_failure(state, monkeypatch) -> None:
    def broken_put(progress) -> None:
        raise StoreError("disk full")

    monkeypatch.setattr(state.progress, "put", broken_put)
    report = state.planner.run_reconciliation_pass()

    assert "progress" in report.failures
    assert report.created_week == "2026-W43"
    assert state.progress.get().first_activation_date is None

    monkeypatch.undo()
    retry = state.planner.run_reconciliation_pass()
    assert retry.ok
    assert state.progress.get().first_activation_date == NOW.date()


def test_pending_weeks_filter_by_month(planner) -> None:
    for start in (date(2026, 11, 2), date(2026, 11, 30), date(2026, 12, 7)):
        planner.create_pending_week(start)

    assert [w.week_key for w in planner.pending_weeks()] == ["2026-W45", "2026-W49", "2026-W50"]
    assert [w.week_key for w in planner.pending_weeks(2026, 11)] == ["2026-W45", "2026-W49"]
    assert [w.week_key for w in planner.pending_weeks(2026, 12)] == ["2026-W50"]
    assert planner.pending_weeks(2027, 1) == []
