"""Ports, errors, events and shared application state."""
