# src/weekcycle/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..notifications.alerts import DeadlineAlerts
from ..planner.api import Planner
from ..planner.progress import ProgressStore
from ..planner.store import PlannerStore


@dataclass
class AppState:
    # Settings object (real Settings or a test SimpleNamespace).
    settings: Any

    store: PlannerStore
    progress: ProgressStore
    alerts: DeadlineAlerts
    planner: Planner

    # Last reconciliation summary lines, shown by /status.
    notes: list[str] = field(default_factory=list)
