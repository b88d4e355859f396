"""Deadline alert implementations of the notification port."""
