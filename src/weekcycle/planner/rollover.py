# src/weekcycle/planner/rollover.py

from __future__ import annotations

"""
Week rollover and catch-up.

A reconciliation pass brings persisted state in line with the clock after any
gap in execution (app not running, device asleep). Steps run in order:

1. bootstrap progress on first activation,
2. expire missed days (from the watermark day up to, not including, today),
3. roll the present week over when the ISO week changed,
4. expire today if its deadline passed,
5. advance the watermark.

Store failures are logged per entity and the pass continues. A missed day that
could not be processed holds the watermark back so the next pass retries it,
which keeps the whole pass idempotent and safe to run on any schedule.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date, timedelta

from ..calendar.weeks import day_key, week_key
from ..config import PlannerOptions
from ..core.errors import StoreError, WeekAlreadyExists
from ..core.events import EventBus, EventKind, PlannerEvent
from ..core.ports import Clock, EntityRepo, NotificationPort, ProgressRepo
from .expiry import expire, is_deadline_passed
from .models import Day, DayStatus, Progress, Week, WeekStatus, make_week

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ReconciliationReport:
    expired_days: list[str] = field(default_factory=list)
    finalized_weeks: list[str] = field(default_factory=list)
    created_week: str | None = None
    promoted_week: str | None = None
    deadline_expired: bool = False
    failures: list[str] = field(default_factory=list)
    watermark: date | None = None

    @property
    def ok(self) -> bool:
        return not self.failures


def finalize_week(week: Week) -> None:
    """Close a week: status past + rollup counters recomputed from its days."""
    week.status = WeekStatus.PAST
    week.completed_count = sum(len(d.done_tasks) for d in week.days)
    week.expired_count = sum(d.expired_count for d in week.days)
    week.started_days = sum(1 for d in week.days if d.status.counts_as_started)
    logger.info(
        "Week %s -> past (completed=%s expired=%s started_days=%s)",
        week.week_key,
        week.completed_count,
        week.expired_count,
        week.started_days,
    )


class RolloverEngine:
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

    # ---- reconciliation ----

    def run_reconciliation_pass(self) -> ReconciliationReport:
        report = ReconciliationReport()
        now = self._clock.now()
        today = self._clock.today()

        progress = self._bootstrap(report)
        first_failed = self._sweep_missed_days(progress.last_reconciled_date, today, report)
        self._sweep_weeks(report)
        self._sweep_deadline(report)

        try:
            self._store.save()
        except StoreError:
            logger.exception("Final save failed; watermark not advanced")
            report.failures.append("save")
            return report

        watermark = today if first_failed is None else first_failed
        try:
            self._progress.put(replace(progress, last_reconciled_date=watermark, last_reconciled_at=now))
        except StoreError:
            logger.exception("Failed to record reconciliation progress")
            report.failures.append("progress")
            return report
        report.watermark = watermark

        if report.expired_days or report.finalized_weeks or report.created_week or report.promoted_week:
            logger.info(
                "Reconciled: expired=%s finalized=%s created=%s promoted=%s deadline=%s failures=%s",
                report.expired_days,
                report.finalized_weeks,
                report.created_week,
                report.promoted_week,
                report.deadline_expired,
                report.failures,
            )
        else:
            logger.debug("Reconciled: nothing to do (watermark=%s)", watermark)

        self._events.publish(PlannerEvent(EventKind.RECONCILED, day_key(today), None))
        return report

    def _bootstrap(self, report: ReconciliationReport) -> Progress:
        """Progress for this pass, with first-activation fields filled in when missing."""
        progress = self._progress.get()
        changed = False
        if progress.first_activation_date is None:
            progress.first_activation_date = self._clock.today()
            changed = True
        if progress.last_reconciled_date is None:
            progress.last_reconciled_date = self._clock.today()
            progress.last_reconciled_at = self._clock.now()
            changed = True
        if changed:
            try:
                self._progress.put(progress)
                logger.info("First activation recorded: %s", progress.first_activation_date)
            except StoreError:
                logger.exception("Recording first activation failed; will retry next pass")
                report.failures.append("progress")
        return progress

    def _sweep_missed_days(self, last: date | None, today: date, report: ReconciliationReport) -> date | None:
        """
        Expire draft/executing days the app never saw end. Returns the first day that failed.
        """
        if last is None or today <= last:
            return None

        first_failed: date | None = None
        # Starts at the watermark day itself, not the day after it: the last pass may
        # have run while that day was still open, so it can still be draft or executing.
        cursor = last
        while cursor < today:
            key = day_key(cursor)
            try:
                day = self._store.fetch_day(key)
                if day is not None and self._expire_missed(day):
                    self._store.save()
                    report.expired_days.append(key)
                    self._publish_day(day)
            except StoreError:
                logger.exception("Cross-day sweep failed for %s; will retry next pass", key)
                report.failures.append(key)
                if first_failed is None:
                    first_failed = cursor
            cursor += timedelta(days=1)
        return first_failed

    def _expire_missed(self, day: Day) -> bool:
        if day.status.is_terminal or day.status == DayStatus.EMPTY:
            return False
        # A draft day never started, so nothing it held counts as lost.
        count = day.open_task_count if day.status == DayStatus.EXECUTING else 0
        expire(day, count, notifier=self._notifier)
        return True

    def _sweep_weeks(self, report: ReconciliationReport) -> None:
        current = self._clock.current_week_key()
        try:
            present = self._store.fetch_weeks(status=WeekStatus.PRESENT)
        except StoreError:
            logger.exception("Cross-week sweep: fetching present weeks failed")
            report.failures.append("weeks")
            return

        if not present:
            self._activate_current_week(current, report)
            return

        if len(present) > 1:
            keep = next((w for w in present if w.week_key == current), present[-1])
            logger.warning(
                "Found %s present weeks %s; keeping %s",
                len(present),
                [w.week_key for w in present],
                keep.week_key,
            )
            for extra in present:
                if extra is not keep:
                    self._finalize(extra, report)
            present = [keep]

        week = present[0]
        if week.week_key == current:
            return

        self._finalize(week, report)
        self._activate_current_week(current, report)

    def _finalize(self, week: Week, report: ReconciliationReport) -> None:
        finalize_week(week)
        try:
            self._store.save()
        except StoreError:
            logger.exception("Saving finalized week %s failed; will retry next pass", week.week_key)
            report.failures.append(week.week_key)
        report.finalized_weeks.append(week.week_key)
        self._events.publish(PlannerEvent(EventKind.WEEK_CHANGED, week.week_key, week.status.value))

    def _activate_current_week(self, current: str, report: ReconciliationReport) -> None:
        try:
            existing = self._store.fetch_week(current)
            if existing is not None:
                if existing.status != WeekStatus.PENDING:
                    logger.warning("Re-activating week %s from status=%s", current, existing.status.value)
                existing.status = WeekStatus.PRESENT
                report.promoted_week = current
                week = existing
            else:
                week = make_week(
                    self._clock.today(),
                    WeekStatus.PRESENT,
                    deadline_hour=self._options.default_deadline_hour,
                    deadline_minute=self._options.default_deadline_minute,
                )
                self._store.insert(week)
                report.created_week = current
            self._store.save()
        except StoreError:
            logger.exception("Activating week %s failed; will retry next pass", current)
            report.failures.append(current)
            return

        logger.info("Week %s -> present", current)
        self._events.publish(PlannerEvent(EventKind.WEEK_CHANGED, week.week_key, week.status.value))

    def _sweep_deadline(self, report: ReconciliationReport) -> None:
        key = day_key(self._clock.today())
        try:
            day = self._store.fetch_day(key)
            if day is None or day.status != DayStatus.EXECUTING:
                return
            if not is_deadline_passed(day, self._clock.now()):
                return
            expire(day, day.open_task_count, notifier=self._notifier)
            report.deadline_expired = True
            self._store.save()
        except StoreError:
            logger.exception("Deadline sweep failed for %s; will retry next pass", key)
            report.failures.append(key)
            return
        self._publish_day(day)

    def _publish_day(self, day: Day) -> None:
        self._events.publish(PlannerEvent(EventKind.DAY_CHANGED, day.day_key, day.status.value))

    # ---- week planning / history ----

    def present_week(self) -> Week | None:
        weeks = self._store.fetch_weeks(status=WeekStatus.PRESENT)
        return weeks[0] if weeks else None

    def _weeks_in_month(self, status: WeekStatus, year: int | None, month: int | None) -> list[Week]:
        def in_month(week: Week) -> bool:
            if year is not None and week.start_date.year != year:
                return False
            if month is not None and week.start_date.month != month:
                return False
            return True

        weeks = self._store.fetch_weeks(in_month, status=status)
        return sorted(weeks, key=lambda w: w.start_date)

    def pending_weeks(self, year: int | None = None, month: int | None = None) -> list[Week]:
        """Planned weeks, optionally limited to those starting in the given month."""
        return self._weeks_in_month(WeekStatus.PENDING, year, month)

    def past_weeks(self, year: int | None = None, month: int | None = None) -> list[Week]:
        """Finalized weeks, optionally limited to those starting in the given month."""
        return self._weeks_in_month(WeekStatus.PAST, year, month)

    def create_pending_week(self, start: date) -> Week:
        """Plan a future week ahead of time; it becomes present when its week arrives."""
        key = week_key(start)
        if key <= self._clock.current_week_key():
            raise ValueError(f"Week {key} is not in the future")
        if self._store.fetch_week(key) is not None:
            raise WeekAlreadyExists(key)

        week = make_week(
            start,
            WeekStatus.PENDING,
            deadline_hour=self._options.default_deadline_hour,
            deadline_minute=self._options.default_deadline_minute,
        )
        self._store.insert(week)
        self._store.save()
        logger.info("Week %s planned (pending)", key)
        self._events.publish(PlannerEvent(EventKind.WEEK_CHANGED, key, week.status.value))
        return week
