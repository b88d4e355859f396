# src/weekcycle/core/errors.py

"""
Error taxonomy.

Lifecycle errors are synchronous and locally recoverable: the caller gets the
exception, the Day is left as it was. StoreError wraps persistence failures.
"""

from __future__ import annotations


class PlannerError(Exception):
    """Base class for every error raised by planner operations."""


class DayNotFound(PlannerError):
    def __init__(self, day_key: str) -> None:
        super().__init__(f"Day not found: {day_key}")
        self.day_key = day_key


class CannotStartEmptyDay(PlannerError):
    def __init__(self) -> None:
        super().__init__("Task list is empty.")


class CannotEditStartedDay(PlannerError):
    def __init__(self, message: str = "Started days cannot be edited.") -> None:
        super().__init__(message)


class DeadlinePassed(PlannerError):
    def __init__(self) -> None:
        super().__init__("Deadline has passed.")


class DayNotExecuting(PlannerError):
    def __init__(self, status: str) -> None:
        super().__init__(f"Day is not executing (status={status}).")
        self.status = status


class TaskNotFound(PlannerError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class WeekAlreadyExists(PlannerError):
    def __init__(self, week_key: str) -> None:
        super().__init__(f"Week already exists: {week_key}")
        self.week_key = week_key


class FocusInvariantError(PlannerError):
    """More than one task ended up in the focus zone."""

    def __init__(self, day_key: str, count: int) -> None:
        super().__init__(f"Day {day_key} has {count} focus tasks (expected at most 1).")
        self.day_key = day_key
        self.count = count


class StoreError(Exception):
    """A fetch or save against the entity store failed."""
