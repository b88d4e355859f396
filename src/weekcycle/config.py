# src/weekcycle/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Planner defaults travel as a read-only PlannerOptions value, never as globals.
- Invalid values fall back to defaults instead of failing at import time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "WEEKCYCLE"

DEFAULT_DEADLINE_HOUR = 20
DEFAULT_DEADLINE_MINUTE = 0
DEFAULT_CATEGORY = "regular"
DEFAULT_REMINDER_LEAD_MINUTES = 30
MAX_REMINDER_LEAD_MINUTES = 120
CATEGORIES = ("regular", "deadline", "leisure")


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class PlannerOptions:
    default_deadline_hour: int = DEFAULT_DEADLINE_HOUR
    default_deadline_minute: int = DEFAULT_DEADLINE_MINUTE
    default_category: str = DEFAULT_CATEGORY
    reminder_lead_minutes: int = DEFAULT_REMINDER_LEAD_MINUTES
    # Presentation only: weeks are always computed Monday-first.
    week_starts_monday: bool = True

    @property
    def is_deadline_valid(self) -> bool:
        return 0 <= self.default_deadline_hour <= 23 and 0 <= self.default_deadline_minute <= 59

    @property
    def is_reminder_valid(self) -> bool:
        return 0 <= self.reminder_lead_minutes <= MAX_REMINDER_LEAD_MINUTES

    @staticmethod
    def from_env() -> "PlannerOptions":
        hour = _env_int(_k("DEFAULT_DEADLINE_HOUR"), DEFAULT_DEADLINE_HOUR)
        minute = _env_int(_k("DEFAULT_DEADLINE_MINUTE"), DEFAULT_DEADLINE_MINUTE)
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            hour, minute = DEFAULT_DEADLINE_HOUR, DEFAULT_DEADLINE_MINUTE

        category = _env(_k("DEFAULT_CATEGORY"), DEFAULT_CATEGORY).strip().lower()
        if category not in CATEGORIES:
            category = DEFAULT_CATEGORY

        lead = _env_int(_k("REMINDER_LEAD_MINUTES"), DEFAULT_REMINDER_LEAD_MINUTES)
        if not (0 <= lead <= MAX_REMINDER_LEAD_MINUTES):
            lead = DEFAULT_REMINDER_LEAD_MINUTES

        return PlannerOptions(
            default_deadline_hour=hour,
            default_deadline_minute=minute,
            default_category=category,
            reminder_lead_minutes=lead,
            week_starts_monday=_env_bool(_k("WEEK_STARTS_MONDAY"), True),
        )


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Connectors ----
    console_enabled: bool
    tick_interval_seconds: float

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path
    progress_path: Path

    # ---- Planner defaults ----
    planner: PlannerOptions

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "weekcycle").strip() or "weekcycle"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)
        tick_interval_seconds = max(1.0, _env_float(_k("TICK_SECONDS"), 60.0))

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/weekcycle"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "planner.sqlite3")
        progress_path = _env_path(_k("PROGRESS_PATH"), data_dir / "progress.json")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            tick_interval_seconds=tick_interval_seconds,
            data_dir=data_dir,
            db_path=db_path,
            progress_path=progress_path,
            planner=PlannerOptions.from_env(),
        )


SETTINGS = Settings.from_env()

# ---- Optional local overrides (never committed) ----
# Prefer .env; use config_local.py only for safe overrides.
try:
    import config_local as _config_local  # type: ignore

    if hasattr(_config_local, "CONSOLE_ENABLED"):
        object.__setattr__(SETTINGS, "console_enabled", bool(_config_local.CONSOLE_ENABLED))  # type: ignore[misc]
    if hasattr(_config_local, "TICK_SECONDS"):
        object.__setattr__(
            SETTINGS, "tick_interval_seconds", max(1.0, float(_config_local.TICK_SECONDS))
        )  # type: ignore[misc]
except ImportError:
    pass


def get_settings() -> Settings:
    return SETTINGS
