# src/weekcycle/notifications/alerts.py

"""
Deadline alerts.

DeadlineAlerts keeps one pending alert per Day, keyed "deadline-<day_key>",
firing `reminder_lead_minutes` before the Day's deadline. The ticker pops due
alerts and hands them to a messenger; delivery itself belongs to the connector.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..calendar.weeks import deadline_instant
from ..planner.models import Day

logger = logging.getLogger(__name__)


def alert_id(day: Day) -> str:
    return f"deadline-{day.day_key}"


@dataclass(slots=True, frozen=True)
class DeadlineAlert:
    alert_id: str
    day_key: str
    deadline: datetime
    fire_at: datetime

    @property
    def text(self) -> str:
        return f"Deadline for {self.day_key} at {self.deadline:%H:%M}: finish your focus task."


class DeadlineAlerts:
    def __init__(self, *, reminder_lead_minutes: int = 0) -> None:
        self._lead = timedelta(minutes=max(0, int(reminder_lead_minutes)))
        self._pending: dict[str, DeadlineAlert] = {}
        self._lock = threading.Lock()

    def schedule_deadline_alert(self, day: Day) -> None:
        deadline = deadline_instant(day.date, day.deadline_hour, day.deadline_minute)
        alert = DeadlineAlert(
            alert_id=alert_id(day),
            day_key=day.day_key,
            deadline=deadline,
            fire_at=deadline - self._lead,
        )
        with self._lock:
            self._pending[alert.alert_id] = alert
        logger.info("Deadline alert scheduled day=%s fire_at=%s", day.day_key, alert.fire_at)

    def cancel_deadline_alert(self, day: Day) -> None:
        with self._lock:
            removed = self._pending.pop(alert_id(day), None)
        if removed is not None:
            logger.info("Deadline alert cancelled day=%s", day.day_key)

    def pending(self) -> list[DeadlineAlert]:
        with self._lock:
            return sorted(self._pending.values(), key=lambda a: a.fire_at)

    def pop_due(self, now: datetime) -> list[DeadlineAlert]:
        """Remove and return alerts whose fire time is at or before `now`."""
        with self._lock:
            due = [a for a in self._pending.values() if a.fire_at <= now]
            for a in due:
                del self._pending[a.alert_id]
        return sorted(due, key=lambda a: a.fire_at)


class NullNotifier:
    """Notification port for hosts without alert delivery."""

    def schedule_deadline_alert(self, day: Day) -> None:
        logger.debug("schedule_deadline_alert ignored day=%s", day.day_key)

    def cancel_deadline_alert(self, day: Day) -> None:
        logger.debug("cancel_deadline_alert ignored day=%s", day.day_key)
