"""
RemoteOrderFeed: a room's order collection as an ordered local view.

Two subscriptions per feed:
- value: the complete current set on every change, rebuilt into a list
  sorted newest first (created_at desc, then number desc);
- child added: a bounded tail (last N children), forwarded through a
  HandlerSlot so consumers can be swapped without resubscribing.

The initial_loaded latch flips once, on the first value callback, including
an empty or absent collection.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

from pickup_core.config import orders_path
from pickup_core.event_loop import HandlerSlot
from pickup_core.order import Order, parse_order, sort_orders
from pickup_core.store.base import RemoteStore

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[tuple[Order, ...]], None]


class RemoteOrderFeed:
    def __init__(self, store: RemoteStore, room_id: str, *, tail: int = 50) -> None:
        if tail <= 0:
            raise ValueError(f"tail must be positive, got {tail}")
        self.store = store
        self.room_id = room_id
        self.tail = tail
        self.initial_loaded = False
        self.initial_ids: frozenset[str] = frozenset()
        self.child_added: HandlerSlot[tuple[str, Any]] = HandlerSlot()
        self._orders: tuple[Order, ...] = ()
        self._listeners: list[SnapshotListener] = []
        self._latch_listeners: list[Callable[[frozenset[str]], None]] = []
        self._unsubscribes: list[Callable[[], None]] = []

    @property
    def orders(self) -> tuple[Order, ...]:
        return self._orders

    def numbers(self) -> list[int]:
        return [o.number for o in self._orders]

    def latest(self) -> Order | None:
        """Most recently created order, if any."""
        return self._orders[0] if self._orders else None

    def get(self, order_id: str) -> Order | None:
        for order in self._orders:
            if order.id == order_id:
                return order
        return None

    def add_listener(self, listener: SnapshotListener) -> None:
        """Called with the ordered orders after every rebuild or local discard."""
        self._listeners.append(listener)

    def on_initial_load(self, listener: Callable[[frozenset[str]], None]) -> None:
        """Called once with the ids of the first snapshot (immediately if already loaded)."""
        if self.initial_loaded:
            listener(self.initial_ids)
        else:
            self._latch_listeners.append(listener)

    def start(self) -> None:
        """Subscribe to the full collection, then to the child-added tail."""
        path = orders_path(self.room_id)
        logger.info("Order feed starting for room %s", self.room_id)
        self._unsubscribes.append(self.store.on_value(path, self._on_value, self._on_error))
        self._unsubscribes.append(
            self.store.on_child_added(
                path,
                lambda key, value: self.child_added((key, value)),
                self._on_error,
                limit_to_last=self.tail,
            )
        )

    def close(self) -> None:
        while self._unsubscribes:
            self._unsubscribes.pop()()

    def discard(self, order_ids: Iterable[str]) -> None:
        """Drop entries locally ahead of the store confirming their removal."""
        drop = set(order_ids)
        if not drop:
            return
        kept = tuple(o for o in self._orders if o.id not in drop)
        if len(kept) != len(self._orders):
            self._orders = kept
            self._notify()

    def _on_value(self, data: Any) -> None:
        orders: list[Order] = []
        if isinstance(data, dict):
            for key, raw in data.items():
                order = parse_order(key, raw)
                if order is not None:
                    orders.append(order)
        elif data is not None:
            logger.warning("Unexpected orders payload for room %s: %r", self.room_id, data)
        self._orders = tuple(sort_orders(orders))
        logger.debug("Room %s snapshot: %d order(s)", self.room_id, len(self._orders))

        if not self.initial_loaded:
            self.initial_loaded = True
            self.initial_ids = frozenset(o.id for o in self._orders)
            logger.info("Initial load complete for room %s (%d order(s))", self.room_id, len(self._orders))
            for listener in self._latch_listeners:
                listener(self.initial_ids)
            self._latch_listeners.clear()
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._orders)

    def _on_error(self, error: Exception) -> None:
        logger.error("Order subscription error for room %s: %s", self.room_id, error)
