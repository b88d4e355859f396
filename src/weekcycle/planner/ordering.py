# src/weekcycle/planner/ordering.py

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TypeVar

from .models import Task

T = TypeVar("T")


def move_items(items: Sequence[T], from_indices: Iterable[int], to_index: int) -> list[T]:
    """
    Move the items at `from_indices` so they land before position `to_index`.

    `to_index` is expressed in the coordinates of the original list (0..len).
    Moved items keep their relative order; so do the others.
    """
    offsets = sorted(set(from_indices))
    n = len(items)
    for i in offsets:
        if not 0 <= i < n:
            raise ValueError(f"index {i} out of range 0..{n - 1}")
    if not 0 <= to_index <= n:
        raise ValueError(f"destination {to_index} out of range 0..{n}")

    chosen = set(offsets)
    moving = [items[i] for i in offsets]
    remaining = [item for i, item in enumerate(items) if i not in chosen]
    insert_at = to_index - sum(1 for i in offsets if i < to_index)
    return remaining[:insert_at] + moving + remaining[insert_at:]


def renumber(tasks: Sequence[Task]) -> None:
    """Assign dense 1..N `order` values following the sequence order."""
    for index, task in enumerate(tasks, start=1):
        task.order = index
