"""
Calendar helpers.

Components:
- weeks.py: pure ISO week / day key arithmetic
- clock.py: substitutable sources of "now" (SystemClock, FixedClock)
"""
