# src/weekcycle/planner/progress.py

from __future__ import annotations

import contextlib
import json
import logging
import os
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path
from typing import Any

from ..core.errors import StoreError
from .models import Progress

logger = logging.getLogger(__name__)


def _parse_date(raw: Any) -> date | None:
    if not isinstance(raw, str) or not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return None


def _parse_dt(raw: Any) -> datetime | None:
    if not isinstance(raw, str) or not raw:
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None


class ProgressStore:
    """
    Process-wide progress counters persisted as a small JSON document.

    Reads are cached; a missing or unreadable file yields a fresh Progress
    (first activation). Writes go through a temp file + os.replace.

    get() hands out a copy: callers edit it and put() it back. The cache only
    changes once a write succeeded, so a failed put() leaves no trace.
    """

    def __init__(self, path: str | Path = "progress.json") -> None:
        self._path = Path(path)
        self._cached: Progress | None = None

    def get(self) -> Progress:
        if self._cached is None:
            self._cached = self._load()
        return replace(self._cached)

    def put(self, progress: Progress) -> None:
        payload = {
            "days_started": int(progress.days_started),
            "first_activation_date": (
                progress.first_activation_date.isoformat() if progress.first_activation_date else None
            ),
            "last_reconciled_date": (
                progress.last_reconciled_date.isoformat() if progress.last_reconciled_date else None
            ),
            "last_reconciled_at": (
                progress.last_reconciled_at.isoformat() if progress.last_reconciled_at else None
            ),
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(".tmp")
            tmp.write_text(json.dumps(payload, indent=2), "utf-8")
            os.replace(tmp, self._path)
        except OSError as e:
            raise StoreError(f"cannot write {self._path}: {e}") from e
        with contextlib.suppress(OSError):
            os.chmod(self._path, 0o600)

        self._cached = replace(progress)
        logger.debug("Progress saved: %s", payload)

    def _load(self) -> Progress:
        if not self._path.exists():
            return Progress()
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except (OSError, ValueError):
            logger.exception("Failed to read progress from %s; starting fresh", self._path)
            return Progress()
        if not isinstance(data, dict):
            return Progress()

        try:
            days_started = max(0, int(data.get("days_started") or 0))
        except (TypeError, ValueError):
            days_started = 0

        progress = Progress(
            days_started=days_started,
            first_activation_date=_parse_date(data.get("first_activation_date")),
            last_reconciled_date=_parse_date(data.get("last_reconciled_date")),
            last_reconciled_at=_parse_dt(data.get("last_reconciled_at")),
        )
        logger.info(
            "Progress loaded from %s (days_started=%s last_reconciled=%s)",
            self._path,
            progress.days_started,
            progress.last_reconciled_date,
        )
        return progress
