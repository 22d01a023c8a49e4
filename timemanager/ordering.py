# timemanager/ordering.py
"""Contiguous order_index maintenance for sibling lists.

Every function works on objects carrying a mutable ``order_index`` attribute
and leaves the collection numbered 0..N-1. Functions that renumber return the
items whose index actually changed; callers must persist all of them.
"""

from __future__ import annotations

from typing import Iterable, List, Protocol, Sequence, TypeVar


class Ordered(Protocol):
    order_index: int


T = TypeVar("T", bound=Ordered)


def sort_by_order(collection: Iterable[T]) -> List[T]:
    return sorted(collection, key=lambda item: item.order_index)


def assign_initial_index(collection: Iterable[Ordered]) -> int:
    """Index for a new item appended after the existing siblings."""
    indices = [int(item.order_index) for item in collection]
    if not indices:
        return 0
    return max(indices) + 1


def _renumber(items: Sequence[T]) -> List[T]:
    changed: List[T] = []
    for pos, item in enumerate(items):
        if item.order_index != pos:
            item.order_index = pos
            changed.append(item)
    return changed


def reindex_after_delete(collection: Iterable[T]) -> List[T]:
    return _renumber(sort_by_order(collection))


def reindex_after_move(collection: Iterable[T], from_position: int, to_position: int) -> List[T]:
    """Move the item at from_position (in current order) to to_position.

    Positions refer to the list sorted by order_index; to_position is the
    final position of the moved item.
    """
    items = sort_by_order(collection)
    n = len(items)
    if not (0 <= from_position < n):
        raise IndexError(f"from_position {from_position} out of range for {n} items")
    if not (0 <= to_position < n):
        raise IndexError(f"to_position {to_position} out of range for {n} items")

    moved = items.pop(from_position)
    items.insert(to_position, moved)
    return _renumber(items)


def is_contiguous(collection: Iterable[Ordered]) -> bool:
    indices = sorted(int(item.order_index) for item in collection)
    return indices == list(range(len(indices)))
