# src/weekcycle/core/events.py

"""
Explicit change notifications.

Planner operations publish a PlannerEvent after every committed transition;
presentation code subscribes instead of observing model attributes.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

logger = logging.getLogger(__name__)


class EventKind(StrEnum):
    DAY_CHANGED = "day_changed"
    WEEK_CHANGED = "week_changed"
    RECONCILED = "reconciled"


@dataclass(slots=True, frozen=True)
class PlannerEvent:
    kind: EventKind
    key: str
    status: str | None = None


Subscriber = Callable[[PlannerEvent], None]


class EventBus:
    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register `callback`; returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event: PlannerEvent) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception("Event subscriber failed kind=%s key=%s", event.kind.value, event.key)
