# src/weekcycle/planner/expiry.py

"""
Expiry effect shared by the lifecycle engine and the reconciliation sweeps.
"""

from __future__ import annotations

import logging
from datetime import datetime

from ..calendar.weeks import deadline_instant
from ..core.ports import NotificationPort
from .models import OPEN_ZONES, Day, DayStatus

logger = logging.getLogger(__name__)


def deadline_of(day: Day) -> datetime:
    return deadline_instant(day.date, day.deadline_hour, day.deadline_minute)


def is_deadline_passed(day: Day, now: datetime) -> bool:
    return now >= deadline_of(day)


def expire(day: Day, expired_count: int, *, notifier: NotificationPort) -> None:
    """
    Mark `day` expired and discard every task not yet done.

    Done tasks survive. Callers must not re-expire an already expired day:
    its open tasks are gone, so a recomputed count would be 0.
    """
    discarded = [t for t in day.tasks if t.zone in OPEN_ZONES]
    day.status = DayStatus.EXPIRED
    day.expired_count = int(expired_count)
    day.tasks = [t for t in day.tasks if t.zone not in OPEN_ZONES]

    logger.info(
        "Day %s expired (expired_count=%s discarded=%s kept=%s)",
        day.day_key,
        day.expired_count,
        len(discarded),
        len(day.tasks),
    )
    notifier.cancel_deadline_alert(day)
