# src/weekcycle/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations (store, progress, clock, alerts) into a Planner,
- returns the AppState shared by the console and the ticker.
"""

from __future__ import annotations

import logging

from ..calendar.clock import SystemClock
from ..config import PlannerOptions, get_settings
from ..core.events import EventBus
from ..core.ports import Clock
from ..core.state import AppState
from ..notifications.alerts import DeadlineAlerts
from ..planner.api import Planner
from ..planner.progress import ProgressStore
from ..planner.store import PlannerStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.progress_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, clock: Clock | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings (and the clock) injectable makes the app easier to test and
    avoids hidden global config reads. If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    options: PlannerOptions = getattr(settings, "planner", None) or PlannerOptions()
    store = PlannerStore(settings.db_path)
    progress = ProgressStore(settings.progress_path)
    alerts = DeadlineAlerts(reminder_lead_minutes=options.reminder_lead_minutes)

    planner = Planner(
        store,
        clock or SystemClock(),
        alerts,
        progress,
        options=options,
        events=EventBus(),
    )

    return AppState(
        settings=settings,
        store=store,
        progress=progress,
        alerts=alerts,
        planner=planner,
    )


def activate(state: AppState) -> None:
    """App activation: reconcile persisted state with the clock before anything else."""
    report = state.planner.run_reconciliation_pass()
    note = (
        f"expired={len(report.expired_days)} finalized={len(report.finalized_weeks)} "
        f"created={report.created_week or '-'} promoted={report.promoted_week or '-'} "
        f"failures={len(report.failures)}"
    )
    state.notes.append(note)
    logger.info("Activation reconciled: %s", note)
