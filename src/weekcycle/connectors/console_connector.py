# src/weekcycle/connectors/console_connector.py

from __future__ import annotations

import logging
import sys
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.events import EventKind, PlannerEvent
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


class ConsoleMessenger:
    """OutboundMessenger that prints deadline alerts to the terminal."""

    async def send_text(self, *, text: str) -> None:
        _print_ts(f"[ALERT] {text}")


def _on_event(event: PlannerEvent) -> None:
    # Only surface transitions the user did not trigger from the prompt.
    if event.kind == EventKind.WEEK_CHANGED:
        _print_ts(f"[WEEK] {event.key} -> {event.status}")


def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Plan your day. Use /help for commands. Use /exit to quit.\n")

    unsubscribe = state.planner.events.subscribe(_on_event)

    def emit(text: str) -> None:
        # Immediate user-visible feedback for long operations
        _print_ts(text)

    try:
        while True:
            try:
                user_input = input(">>> ").strip()
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break
            except KeyboardInterrupt:
                logger.info("Console KeyboardInterrupt, exiting.")
                print()
                break

            if not user_input:
                continue

            if user_input.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            if not user_input.startswith("/"):
                # Bare text is a shortcut for /add.
                user_input = f"/add {user_input}"

            try:
                reply = command_registry.handle(state, user_input, emit=emit)
            except Exception:
                logger.exception("Command handler crashed.")
                reply = "Internal error while handling a command."

            if reply is not None:
                print(f"[{_ts_local()}] {reply}", file=sys.stdout, flush=True)
    finally:
        unsubscribe()

    logger.info("Console connector finished.")
