# src/weekcycle/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the planner REPL readable while the reconciliation ticker runs.

    The ticker wakes every minute on its own thread; its routine INFO lines
    would land between the prompt and what the user is typing, so on the
    console it only speaks at WARNING and above. Lifecycle and rollover logs
    (day started, day expired, week finalized) stay visible. Captured
    warnings and other libraries only reach the console at ERROR.
    The log file still receives everything.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        # Our app logs: keep, but the ticker runs every minute in a background thread.
        if name.startswith("weekcycle."):
            if name.startswith("weekcycle.planner.ticker"):
                return record.levelno >= logging.WARNING
            return True

        if name == "py.warnings":
            return record.levelno >= logging.ERROR

        # Any other 3rd party: only errors to console.
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/weekcycle",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> None:
    """
    Send weekcycle logs to stderr (filtered for the REPL) and to
    `<log_dir>/weekcycle.log` (unfiltered, DEBUG by default).

    Replaces any handlers already on the root logger, so calling it again
    does not duplicate output. The entrypoint calls it before the ticker starts.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "weekcycle.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Remove any pre-existing handlers to avoid duplicates.
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Console (interactive)
    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    # File (everything)
    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    # Route warnings.warn(...) into logging as 'py.warnings'
    logging.captureWarnings(True)
