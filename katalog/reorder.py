"""
Katalog: Reordering

Pure list moves over the full (unfiltered) collection. After a move every
item's `order` equals its position, so order values are exactly 0..n-1.
Persisting a move is the orchestrator's job; `restore_orders` undoes one
without resurrecting items removed in the meantime.
"""

from __future__ import annotations

import copy
from collections.abc import Sequence
from typing import Any, Protocol, TypeVar


class Orderable(Protocol):
    id: Any
    order: int


T = TypeVar("T", bound=Orderable)


def drop_target(old_index: int, new_index: int) -> int:
    """
    Convert drag-callback indices to a destination index.

    Drag callbacks report the insertion slot counted before the dragged item
    is removed, so moving down overshoots by one.
    """
    if new_index > old_index:
        return new_index - 1
    return new_index


def _check_index(index: int, length: int, name: str) -> None:
    if not 0 <= index < length:
        raise IndexError(f"{name} {index} out of range for {length} items")


def move(items: Sequence[T], old_index: int, new_index: int) -> list[T]:
    """Move one element to `new_index`, keeping the relative order of the rest."""
    _check_index(old_index, len(items), "old_index")
    _check_index(new_index, len(items), "new_index")

    moved = list(items)
    item = moved.pop(old_index)
    moved.insert(new_index, item)
    return moved


def renumber(items: Sequence[T]) -> list[T]:
    """Copies of `items` with order set to position."""
    result: list[T] = []
    for position, item in enumerate(items):
        clone = copy.copy(item)
        clone.order = position
        result.append(clone)
    return result


def reorder(items: Sequence[T], old_index: int, new_index: int) -> list[T]:
    """Move then renumber. The input sequence is not modified."""
    return renumber(move(items, old_index, new_index))


def order_mapping(items: Sequence[T]) -> dict[Any, int]:
    """id -> order for every item, as sent to the gateway."""
    return {item.id: item.order for item in items}


def restore_orders(current: Sequence[T], previous: Sequence[T]) -> list[T]:
    """
    Put back the order values `previous` had, on whatever `current` now holds.

    Items removed since `previous` stay removed; items added since keep their
    own order. The result is sorted by order.
    """
    old_orders = order_mapping(previous)
    restored: list[T] = []
    for item in current:
        if item.id in old_orders and item.order != old_orders[item.id]:
            item = copy.copy(item)
            item.order = old_orders[item.id]
        restored.append(item)
    return sorted(restored, key=lambda item: item.order)
