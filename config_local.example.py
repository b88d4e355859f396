# config_local.example.py

"""
Example local overrides.

Usage:
  1) Copy this file to `config_local.py`
  2) Adjust values for your machine
  3) Never commit `config_local.py` (it is gitignored)

Prefer `.env` (WEEKCYCLE_* variables). This file should contain only safe overrides.
"""

# Example: run headless (ticker only, no console REPL)
# CONSOLE_ENABLED = False

# Example: reconcile more often while debugging
# TICK_SECONDS = 5
