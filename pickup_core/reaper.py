"""
ExpiryReaper: removes orders whose TTL has passed.

Runs on every display client independently. Comparisons use server-corrected
time. Deletes are fire-and-forget; several clients deleting the same key is
expected and harmless, so failures are logged and never retried.
"""

from __future__ import annotations

import logging

from pickup_core.clock import ClockSync
from pickup_core.config import order_path
from pickup_core.feed import RemoteOrderFeed
from pickup_core.store.types import StoreError

logger = logging.getLogger(__name__)


class ExpiryReaper:
    def __init__(self, feed: RemoteOrderFeed, clock_sync: ClockSync) -> None:
        self.feed = feed
        self.clock_sync = clock_sync
        self.removed = 0
        self.failed = 0

    def sweep(self) -> list[str]:
        """Partition the local view at server_now; drop and delete the expired ids."""
        now = self.clock_sync.server_now()
        expired = [o.id for o in self.feed.orders if o.is_expired(now)]
        if not expired:
            return []
        logger.info("Removing %d expired order(s) from room %s", len(expired), self.feed.room_id)
        self.feed.discard(expired)
        for order_id in expired:
            try:
                self.feed.store.remove(order_path(self.feed.room_id, order_id))
                self.removed += 1
            except StoreError as e:
                self.failed += 1
                logger.error("Failed to remove expired order %s: %s", order_id, e)
        return expired
