# tests/test_alerts.py

from __future__ import annotations

from datetime import date, datetime

from weekcycle.notifications.alerts import DeadlineAlerts, alert_id
from weekcycle.planner.models import WeekStatus, make_week


def _day(hour: int = 20, minute: int = 0):
    day = make_week(date(2026, 10, 21), WeekStatus.PRESENT).day("2026-10-21")
    day.deadline_hour, day.deadline_minute = hour, minute
    return day


def test_alert_fires_ahead_of_deadline() -> None:
    alerts = DeadlineAlerts(reminder_lead_minutes=30)
    day = _day()
    alerts.schedule_deadline_alert(day)

    (alert,) = alerts.pending()
    assert alert.alert_id == alert_id(day) == "deadline-2026-10-21"
    assert alert.deadline == datetime(2026, 10, 21, 20, 0)
    assert alert.fire_at == datetime(2026, 10, 21, 19, 30)
    assert "20:00" in alert.text

    assert alerts.pop_due(datetime(2026, 10, 21, 19, 29)) == []
    assert alerts.pop_due(datetime(2026, 10, 21, 19, 30)) == [alert]
    assert alerts.pending() == []


def test_rescheduling_replaces_alert_for_the_day() -> None:
    alerts = DeadlineAlerts()
    day = _day()
    alerts.schedule_deadline_alert(day)
    day.deadline_hour = 22
    alerts.schedule_deadline_alert(day)

    (alert,) = alerts.pending()
    assert alert.fire_at == datetime(2026, 10, 21, 22, 0)


def test_cancel_removes_alert() -> None:
    alerts = DeadlineAlerts()
    day = _day()
    alerts.schedule_deadline_alert(day)
    alerts.cancel_deadline_alert(day)
    alerts.cancel_deadline_alert(day)
    assert alerts.pending() == []
