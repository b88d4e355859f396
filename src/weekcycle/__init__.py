"""Weekly day planner: task lifecycle, week rollover and catch-up reconciliation."""

__version__ = "0.1.0"
