"""
Planner subsystem.

Components:
- models.py: data structures (Week, Day, Task, statuses and zones)
- store.py: SQLite-backed Week/Day/Task store (identity map + save())
- progress.py: process-wide progress counters (JSON file)
- expiry.py: the expiry effect shared by lifecycle and sweeps
- lifecycle.py: Day/Task state machine (add, start, complete focus, deadline)
- rollover.py: reconciliation pass (missed days, week rollover, deadline sweep)
- api.py: Planner facade serializing every operation behind one lock
- ticker.py: periodic reconciliation loop + deadline alert dispatch
"""
