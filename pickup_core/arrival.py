"""
ArrivalDetector: tells genuine arrivals from catch-up.

Child-added events received before the feed's initial snapshot are catch-up and
ignored. After the latch, an event is a genuine arrival unless its id was part
of the first snapshot or was already classified; each genuine arrival is
forwarded exactly once.
"""

from __future__ import annotations

import logging
from typing import Any

from pickup_core.event_loop import HandlerSlot
from pickup_core.events import Arrival
from pickup_core.feed import RemoteOrderFeed
from pickup_core.order import parse_order

logger = logging.getLogger(__name__)


class ArrivalDetector:
    def __init__(self, feed: RemoteOrderFeed) -> None:
        self.feed = feed
        self.on_arrival: HandlerSlot[Arrival] = HandlerSlot()
        self._seen: set[str] = set()
        self.ignored = 0
        self.arrivals = 0

    def attach(self) -> None:
        """Route the feed's child-added stream here and seed ids from the first snapshot."""
        self.feed.child_added.set(self.handle)
        self.feed.on_initial_load(self._seed)

    def _seed(self, ids: frozenset[str]) -> None:
        self._seen.update(ids)

    def handle(self, event: tuple[str, Any]) -> bool:
        """Classify one child-added event. Returns True for a genuine arrival."""
        key, value = event
        if not key or value is None:
            return False
        if not self.feed.initial_loaded:
            self.ignored += 1
            logger.debug("Initial load in progress, not highlighting %s", key)
            return False
        if key in self._seen:
            return False
        self._seen.add(key)
        order = parse_order(key, value)
        number = order.number if order is not None else 0
        self.arrivals += 1
        logger.info("New order %s (number %d)", key, number)
        self.on_arrival(Arrival(order_id=key, number=number))
        return True
