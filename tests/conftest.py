# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from weekcycle.calendar.clock import FixedClock
from weekcycle.cli.bootstrap import create_initial_state
from weekcycle.config import PlannerOptions
from weekcycle.core.state import AppState
from weekcycle.planner.api import Planner

from .fakes import NOW


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        data_dir=tmp_path,
        db_path=tmp_path / "planner.sqlite3",
        progress_path=tmp_path / "progress.json",
        tick_interval_seconds=0.01,
        console_enabled=False,
        planner=PlannerOptions(),
    )


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture()
def state(settings: SimpleNamespace, clock: FixedClock) -> AppState:
    """
    AppState wired with a fixed clock.

    NOTE: We keep real SQLite/JSON stores here because their correctness
    is part of what we want to test.
    """
    return create_initial_state(settings=settings, clock=clock)


@pytest.fixture()
def planner(state: AppState) -> Planner:
    """Planner after its first activation (present week exists)."""
    state.planner.run_reconciliation_pass()
    return state.planner
