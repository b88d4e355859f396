# src/weekcycle/cli/commands.py

from __future__ import annotations

import inspect
import logging
import re
from collections.abc import Callable
from datetime import date
from typing import cast

from ..calendar.weeks import deadline_instant, parse_week_key
from ..core.errors import PlannerError
from ..core.state import AppState
from ..planner.models import Day, TaskCategory, Week

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, /start, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str, emit: CommandEmitter | None = None) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Planner errors and bad arguments become user-facing replies.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except PlannerError as e:
            logger.info("/%s rejected: %s", name, e)
            return f"Cannot do that: {e}"
        except ValueError as e:
            return f"Invalid input: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- formatting ----


def format_day(day: Day) -> str:
    deadline = deadline_instant(day.date, day.deadline_hour, day.deadline_minute)
    lines = [f"{day.day_key} ({day.weekday_short}) - {day.status.value}, deadline {deadline:%H:%M}"]

    for t in day.planning_tasks:
        lines.append(f"  {t.task_number} [{t.category.value}] {t.title}")
    focus = day.focus_task
    if focus is not None:
        lines.append(f"  > FOCUS {focus.title}")
    for t in day.frozen_tasks:
        lines.append(f"  . frozen {t.title}")
    for t in day.done_tasks:
        lines.append(f"  {t.completed_order}. done {t.title}")
    if day.expired_count:
        lines.append(f"  ({day.expired_count} task(s) lost to expiry)")
    return "\n".join(lines)


def format_week(week: Week) -> str:
    lines = [f"Week {week.week_key} ({week.start_date} .. {week.end_date}) - {week.status.value}"]
    for d in week.days:
        done = len(d.done_tasks)
        total = len(d.tasks)
        lines.append(f"  {d.weekday_short} {d.day_key}: {d.status.value} ({done}/{total} done)")
    if week.status.value == "past":
        lines.append(
            f"  completed={week.completed_count} expired={week.expired_count} started_days={week.started_days}"
        )
    return "\n".join(lines)


def _positions(raw: str) -> list[int]:
    """'1,3' -> [0, 2] (1-based task numbers to 0-based positions)."""
    out = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        n = int(part)
        if n < 1:
            raise ValueError(f"task numbers start at 1, got {n}")
        out.append(n - 1)
    if not out:
        raise ValueError("no task numbers given")
    return out


# ---- handlers ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_today(state: AppState, args: list[str]) -> str:
    day = state.planner.today()
    if day is None:
        return "Today has no day yet. Use /sync to run a reconciliation pass."
    return format_day(day)


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add [#category] title [| description]
    """
    if not args:
        return "Usage: /add [#regular|#deadline|#leisure] title [| description]"

    category: TaskCategory | None = None
    if args[0].startswith("#"):
        category = TaskCategory(args[0][1:].lower())
        args = args[1:]

    text = " ".join(args)
    title, _, description = text.partition("|")
    task = state.planner.add_task(title, description, category)
    return f"Added {task.task_number}: {task.title}"


def cmd_edit(state: AppState, args: list[str]) -> str:
    """/edit N new title [| description]"""
    if len(args) < 2:
        return "Usage: /edit N new title [| description]"
    (pos,) = _positions(args[0])
    day = state.planner.today()
    planning = day.planning_tasks if day is not None else []
    if pos >= len(planning):
        return f"No planning task #{pos + 1}."

    title, sep, description = " ".join(args[1:]).partition("|")
    task = state.planner.update_task(
        planning[pos].task_id,
        title=title,
        description=description if sep else None,
    )
    return f"Updated {task.task_number}: {task.title}"


def cmd_rm(state: AppState, args: list[str]) -> str:
    """/rm N[,N...]"""
    if not args:
        return "Usage: /rm N[,N...]"
    positions = _positions(",".join(args))
    state.planner.delete_tasks(positions)
    return f"Deleted {len(set(positions))} task(s)."


def cmd_move(state: AppState, args: list[str]) -> str:
    """/move N[,N...] BEFORE  (BEFORE = position to insert before; count+1 for the end)"""
    if len(args) != 2:
        return "Usage: /move N[,N...] BEFORE"
    (before,) = _positions(args[1])
    tasks = state.planner.reorder_tasks(_positions(args[0]), before)
    return "Order: " + ", ".join(f"{t.task_number} {t.title}" for t in tasks)


def cmd_start(state: AppState, args: list[str]) -> str:
    day = state.planner.start_day()
    return format_day(day)


def cmd_done(state: AppState, args: list[str]) -> str:
    task = state.planner.complete_focus_task()
    if task is None:
        return "No task in focus."
    day = state.planner.today()
    return f"Done: {task.title}\n" + (format_day(day) if day is not None else "")


def cmd_deadline(state: AppState, args: list[str]) -> str:
    """/deadline HH:MM"""
    m = _TIME_RE.match(args[0]) if args else None
    if not m:
        return "Usage: /deadline HH:MM"
    day = state.planner.change_deadline(int(m.group(1)), int(m.group(2)))
    if day.status.value == "expired":
        return f"Deadline moved into the past: {day.day_key} expired."
    return f"Deadline set to {day.deadline_hour:02d}:{day.deadline_minute:02d}."


def cmd_week(state: AppState, args: list[str]) -> str:
    week = state.planner.present_week()
    if week is None:
        return "No present week. Use /sync."
    lines = [format_week(week)]
    for pending in state.planner.pending_weeks():
        lines.append(f"Planned: {pending.week_key} ({pending.start_date} .. {pending.end_date})")
    return "\n".join(lines)


def cmd_plan(state: AppState, args: list[str]) -> str:
    """/plan YYYY-MM-DD | YYYY-Www"""
    if not args:
        return "Usage: /plan YYYY-MM-DD | YYYY-Www"
    raw = args[0].strip()
    start = parse_week_key(raw) if "W" in raw.upper() else date.fromisoformat(raw)
    week = state.planner.create_pending_week(start)
    return f"Planned week {week.week_key} ({week.start_date} .. {week.end_date})."


def _month(args: list[str]) -> tuple[int | None, int | None]:
    """[] -> (None, None); ["2026-10"] -> (2026, 10)."""
    if not args:
        return None, None
    m = _MONTH_RE.match(args[0])
    if not m:
        raise ValueError(f"expected YYYY-MM, got {args[0]!r}")
    return int(m.group(1)), int(m.group(2))


def cmd_pending(state: AppState, args: list[str]) -> str:
    """/pending [YYYY-MM]"""
    weeks = state.planner.pending_weeks(*_month(args))
    if not weeks:
        return "No planned weeks."
    return "\n".join(f"{w.week_key} ({w.start_date} .. {w.end_date})" for w in weeks)


def cmd_past(state: AppState, args: list[str]) -> str:
    """/past [YYYY-MM]"""
    weeks = state.planner.past_weeks(*_month(args))
    if not weeks:
        return "No past weeks."
    return "\n".join(format_week(w) for w in weeks)


def cmd_sync(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if emit:
        emit("[SYNC] Reconciling...")
    report = state.planner.run_reconciliation_pass()
    return (
        "Reconciled:\n"
        f"  expired days: {', '.join(report.expired_days) or '-'}\n"
        f"  finalized weeks: {', '.join(report.finalized_weeks) or '-'}\n"
        f"  created: {report.created_week or '-'}  promoted: {report.promoted_week or '-'}\n"
        f"  deadline expired today: {'yes' if report.deadline_expired else 'no'}\n"
        f"  failures: {', '.join(report.failures) or '-'}"
    )


def cmd_status(state: AppState, args: list[str]) -> str:
    progress = state.planner.progress()
    stats = state.store.stats()
    alerts = state.alerts.pending()
    last = progress.last_reconciled_at.strftime("%Y-%m-%d %H:%M:%S") if progress.last_reconciled_at else "-"
    lines = [
        "Status:",
        f"  Days started: {progress.days_started}",
        f"  First activation: {progress.first_activation_date or '-'}",
        f"  Last reconciled: {progress.last_reconciled_date or '-'} (at {last})",
        f"  Weeks: {stats['weeks']}  tasks: {stats['tasks']}",
        f"  Pending alerts: {', '.join(f'{a.day_key}@{a.fire_at:%H:%M}' for a in alerts) or '-'}",
    ]
    if state.notes:
        lines.append(f"  Activation: {state.notes[-1]}")
    return "\n".join(lines)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("today", cmd_today, help_text="Show today's tasks by zone.", aliases=["t"])
registry.register("add", cmd_add, help_text="Add a task: /add [#deadline] title [| description].")
registry.register("edit", cmd_edit, help_text="Edit a planning task: /edit N title [| description].")
registry.register("rm", cmd_rm, help_text="Delete planning tasks: /rm N[,N...].")
registry.register("move", cmd_move, help_text="Reorder planning tasks: /move N[,N...] BEFORE.")
registry.register("start", cmd_start, help_text="Start the day (first task goes into focus).")
registry.register("done", cmd_done, help_text="Complete the focus task.")
registry.register("deadline", cmd_deadline, help_text="Change today's deadline: /deadline HH:MM.")
registry.register("week", cmd_week, help_text="Show the present week.", aliases=["w"])
registry.register("plan", cmd_plan, help_text="Plan a future week: /plan YYYY-MM-DD | YYYY-Www.")
registry.register("pending", cmd_pending, help_text="Show planned weeks: /pending [YYYY-MM].")
registry.register("past", cmd_past, help_text="Show past weeks: /past [YYYY-MM].")
registry.register("sync", cmd_sync, help_text="Run a reconciliation pass now.")
registry.register("status", cmd_status, help_text="Show progress counters and pending alerts.")
