"""
Katalog: Entity State Store

Holds the in-memory collection for one entity type plus derived view
state. Every change builds a new frozen Snapshot and swaps it in with a
single assignment, then notifies subscribers, so a reader sees either the
previous or the next snapshot and never a half-applied one.

Usage:
    store = EntityStore[Kata]()
    unsubscribe = store.subscribe(lambda snap: render(snap.visible))
    store.set_all(katas)
    store.apply_query("nidan")
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from typing import Any, Generic, TypeVar

from katalog.search import filter_items
from katalog.types import KataCategory

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[["Snapshot[T]"], None]


@dataclass(frozen=True)
class Snapshot(Generic[T]):
    """Immutable view of a store at one point in time."""

    items: tuple[T, ...] = ()
    query: str = ""
    category: KataCategory | None = None
    visible: tuple[T, ...] = ()
    loading: bool = False
    error: str | None = None
    pending_ids: frozenset[Any] = field(default_factory=frozenset)

    @property
    def is_filtered(self) -> bool:
        return bool(self.query.strip()) or (self.category is not None and self.category != KataCategory.ALL)


def _has_order(item: Any) -> bool:
    return hasattr(item, "order")


def _sorted_by_order(items: Iterable[T]) -> list[T]:
    items = list(items)
    if items and all(_has_order(item) for item in items):
        # stable: equal order values keep gateway order
        return sorted(items, key=lambda item: item.order)
    return items


class EntityStore(Generic[T]):
    """Single writer of one collection's in-memory snapshot."""

    def __init__(self, items: Iterable[T] = ()) -> None:
        ordered = tuple(_sorted_by_order(items))
        self._snapshot: Snapshot[T] = Snapshot(items=ordered, visible=ordered)
        self._listeners: list[Listener] = []

    # -- reads --

    @property
    def snapshot(self) -> Snapshot[T]:
        return self._snapshot

    @property
    def items(self) -> tuple[T, ...]:
        return self._snapshot.items

    @property
    def visible(self) -> tuple[T, ...]:
        return self._snapshot.visible

    def get(self, item_id: Any) -> T | None:
        for item in self._snapshot.items:
            if item.id == item_id:
                return item
        return None

    def next_order(self) -> int:
        orders = [item.order for item in self._snapshot.items if _has_order(item)]
        return max(orders) + 1 if orders else 0

    # -- observers --

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, snapshot: Snapshot[T]) -> None:
        self._snapshot = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("store: listener %r failed", listener)

    def _with_items(self, items: Iterable[T], **changes: Any) -> Snapshot[T]:
        items = tuple(items)
        snap = self._snapshot
        query = changes.pop("query", snap.query)
        category = changes.pop("category", snap.category)
        visible = tuple(filter_items(items, query, category))
        return replace(snap, items=items, query=query, category=category, visible=visible, **changes)

    # -- collection --

    def set_all(self, items: Iterable[T]) -> None:
        """Replace the full collection after a refresh."""
        self._commit(self._with_items(_sorted_by_order(items), loading=False, error=None, pending_ids=frozenset()))

    def apply_query(self, query: str) -> None:
        self._commit(self._with_items(self._snapshot.items, query=query))

    def apply_category(self, category: KataCategory | None) -> None:
        self._commit(self._with_items(self._snapshot.items, category=category))

    def upsert_one(self, item: T) -> None:
        """
        Replace in place when the id is present, otherwise append.

        Appended items that carry an order get the next order value unless
        they already sort after every existing item.
        """
        if getattr(item, "id", None) is None:
            raise ValueError("upsert_one requires an item with an id")

        items = list(self._snapshot.items)
        for index, existing in enumerate(items):
            if existing.id == item.id:
                items[index] = item
                self._commit(self._with_items(_sorted_by_order(items)))
                return

        if _has_order(item):
            next_order = self.next_order()
            if item.order < next_order:
                item = replace(item, order=next_order)
        items.append(item)
        self._commit(self._with_items(items))

    def remove_one(self, item_id: Any) -> None:
        """Remove by id. Remaining order values are left as they are."""
        items = [item for item in self._snapshot.items if item.id != item_id]
        if len(items) == len(self._snapshot.items):
            return
        self._commit(self._with_items(items, pending_ids=self._snapshot.pending_ids - {item_id}))

    def replace_items(self, items: Iterable[T]) -> None:
        """Swap in a reordered collection without touching flags."""
        self._commit(self._with_items(items))

    # -- tentative entries --

    def add_pending(self, item: T) -> None:
        """Show a tentative entry until the gateway confirms or rejects it."""
        if getattr(item, "id", None) is None:
            raise ValueError("pending items need a temporary id")
        items = [*self._snapshot.items, item]
        self._commit(self._with_items(items, pending_ids=self._snapshot.pending_ids | {item.id}))

    def confirm_pending(self, temp_id: Any, item: T) -> None:
        """Promote a tentative entry to the confirmed record."""
        items = [item if existing.id == temp_id else existing for existing in self._snapshot.items]
        if temp_id not in {existing.id for existing in self._snapshot.items}:
            items.append(item)
        self._commit(self._with_items(items, pending_ids=self._snapshot.pending_ids - {temp_id}))

    def discard_pending(self, temp_id: Any) -> None:
        items = [existing for existing in self._snapshot.items if existing.id != temp_id]
        self._commit(self._with_items(items, pending_ids=self._snapshot.pending_ids - {temp_id}))

    # -- flags --

    def set_loading(self, loading: bool) -> None:
        self._commit(replace(self._snapshot, loading=loading))

    def set_error(self, message: str) -> None:
        self._commit(replace(self._snapshot, error=message, loading=False))

    def clear_error(self) -> None:
        self._commit(replace(self._snapshot, error=None))
