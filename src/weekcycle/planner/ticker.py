# src/weekcycle/planner/ticker.py

from __future__ import annotations

"""
Periodic reconciliation.

A small polling loop that, every interval:
- runs a reconciliation pass (missed days, week rollover, deadline expiry),
- pops deadline alerts that are due,
- sends them via an injected messenger port.

Delivery (console, push, chat) belongs to the connector, not the ticker.
"""

import asyncio
import contextlib
import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..core.ports import OutboundMessenger
from ..notifications.alerts import DeadlineAlerts
from .api import Planner

if TYPE_CHECKING:
    from ..core.state import AppState

logger = logging.getLogger(__name__)


async def tick_once(planner: Planner, alerts: DeadlineAlerts | None, messenger: OutboundMessenger | None) -> int:
    """One tick: reconcile, then dispatch due alerts. Returns the number of alerts sent."""
    try:
        planner.run_reconciliation_pass()
    except Exception:
        logger.exception("Reconciliation pass failed")

    if alerts is None or messenger is None:
        return 0

    sent = 0
    for alert in alerts.pop_due(planner.clock.now()):
        try:
            await messenger.send_text(text=alert.text)
            sent += 1
            logger.info("Deadline alert sent day=%s", alert.day_key)
        except Exception:
            logger.exception("Deadline alert send failed day=%s", alert.day_key)
    return sent


async def run_reconciliation_ticker(
        planner: Planner,
        alerts: DeadlineAlerts | None = None,
        messenger: OutboundMessenger | None = None,
        *,
        interval_seconds: float = 60.0,
        stop_event: asyncio.Event | None = None,
) -> None:
    """
    Run tick_once() every interval_seconds until stop_event is set.

    Without a stop_event, cancel the coroutine/task to stop.
    """
    sleep_s = max(0.01, float(interval_seconds))

    while stop_event is None or not stop_event.is_set():
        await tick_once(planner, alerts, messenger)

        if stop_event is None:
            await asyncio.sleep(sleep_s)
            continue
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(stop_event.wait(), timeout=sleep_s)


@dataclass
class TickerBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except RuntimeError:
            logger.debug("Failed to signal ticker stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_ticker_in_background(
        state: AppState,
        messenger: OutboundMessenger | None = None,
) -> TickerBackgroundRunner | None:
    """
    Start the ticker in a background thread (so the console REPL can run in parallel).

    The console REPL blocks on input(); the ticker wants its own event loop.
    Both go through the Planner lock, so they never interleave mutations.
    """
    ready = threading.Event()
    holder: dict[str, object] = {}
    interval = float(getattr(state.settings, "tick_interval_seconds", 60.0))

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(
                run_reconciliation_ticker(
                    state.planner,
                    state.alerts,
                    messenger,
                    interval_seconds=interval,
                    stop_event=stop_event,
                )
            )
        finally:
            with contextlib.suppress(RuntimeError):
                loop.close()

    t = threading.Thread(target=runner, name="weekcycle-ticker", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Ticker thread did not initialize properly.")
        return None

    logger.info("Ticker started (interval=%ss).", interval)
    return TickerBackgroundRunner(thread=t, loop=loop, stop_event=stop_event)
