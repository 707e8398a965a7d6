"""
Controller: the staff side of a room.

Flow for a submission: parse input → validators (DedupGuard first) →
connectivity check → push with server-corrected timestamps → observers.
Deletes capture an undo snapshot first. Every action is fired once; failures
come back as results and are never retried.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol

from pickup_core.clock import ClockSync, LocalClock, system_clock_ms
from pickup_core.config import Settings, normalize_room_id, order_path, orders_path
from pickup_core.connection import ConnectionStatus
from pickup_core.feed import RemoteOrderFeed
from pickup_core.guard import DedupGuard
from pickup_core.order import Order, new_order_payload, parse_order_number
from pickup_core.recommend import RecommendationEngine
from pickup_core.results import ActionKind, ActionResult, RejectedAction
from pickup_core.store.base import RemoteStore
from pickup_core.store.types import StoreError
from pickup_core.ttl import TTLConfig, minutes_to_ms
from pickup_core.undo import UndoBuffer

logger = logging.getLogger(__name__)

NOT_CONNECTED = "Not connected to the server. Please try again once the connection is back."


class SubmissionValidator(Protocol):
    """Return a user-facing reason to reject number, or None to allow."""

    def __call__(self, number: int) -> str | None:
        ...


class ActionObserver(Protocol):
    """Called with every action result (e.g. to show a notification)."""

    def __call__(self, result: ActionResult) -> None:
        ...


class Controller:
    """
    Staff controller for one room. Call start() before use and close() when
    leaving the room.
    """

    def __init__(
        self,
        store: RemoteStore,
        room_id: str,
        *,
        settings: Settings | None = None,
        local_clock: LocalClock = system_clock_ms,
        validators: Sequence[SubmissionValidator] = (),
        observers: Sequence[ActionObserver] = (),
        undo_depth: int = 1,
    ) -> None:
        self.settings = settings or Settings()
        self.store = store
        self.room_id = normalize_room_id(room_id)
        self.clock_sync = ClockSync(local_clock)
        self.connection = ConnectionStatus()
        self.feed = RemoteOrderFeed(store, self.room_id, tail=self.settings.controller_tail)
        self.ttl = TTLConfig(store, self.room_id, default_ms=self.settings.default_ttl_ms)
        self.guard = DedupGuard(lambda: self.feed.orders, self.clock_sync)
        self.validators: list[SubmissionValidator] = [self.guard, *validators]
        self.observers: list[ActionObserver] = list(observers)
        self.undo_buffer = UndoBuffer(undo_depth)
        self.recommender = RecommendationEngine()
        self._rejected_log: list[RejectedAction] = []

    def start(self) -> None:
        self.clock_sync.attach(self.store)
        self.connection.attach(self.store)
        self.feed.start()
        self.ttl.load()
        self.ttl.follow()
        logger.info("Controller ready for room %s (TTL %d ms)", self.room_id, self.ttl.ttl_ms)

    def close(self) -> None:
        self.ttl.close()
        self.feed.close()
        self.connection.close()
        self.clock_sync.close()

    def get_rejected_log(self) -> list[RejectedAction]:
        """Return rejected and failed actions for debugging and reporting."""
        return list(self._rejected_log)

    # --- views ---

    def recent_orders(self) -> list[Order]:
        return list(self.feed.orders[: self.settings.controller_tail])

    def recommendations(self) -> list[int]:
        return self.recommender.from_orders(self.feed.orders)

    def find_by_number(self, number: int) -> Order | None:
        """Newest order in the local view with this number."""
        for order in self.feed.orders:
            if order.number == number:
                return order
        return None

    # --- actions ---

    def submit(self, value: Any) -> ActionResult:
        """Add an order from typed input (string of digits) or an int."""
        ts = self.clock_sync.server_now()
        try:
            number = parse_order_number(value)
        except ValueError as e:
            return self._finish("submit", ActionKind.REJECTED, str(e), ts)

        for validator in self.validators:
            reason = validator(number)
            if reason:
                logger.info("Submission of %d rejected: %s", number, reason)
                return self._finish("submit", ActionKind.REJECTED, reason, ts, number=number)

        if not self.connection.connected:
            return self._finish("submit", ActionKind.FAILED, NOT_CONNECTED, ts, number=number)

        payload = new_order_payload(number, ts, self.ttl.ttl_ms)
        try:
            order_id = self.store.push(orders_path(self.room_id), payload)
        except StoreError as e:
            logger.exception("Adding order %d failed: %s", number, e)
            return self._finish(
                "submit", ActionKind.FAILED, "Could not add the order. Please try again.", ts, number=number
            )
        logger.info("Order %d added as %s (expires %d)", number, order_id, payload["expiresAt"])
        # A fresh submission makes the last delete no longer undoable.
        self.undo_buffer.clear()
        return self._finish(
            "submit", ActionKind.ACCEPTED, f"Order number {number} added.", ts, order_id=order_id, number=number
        )

    def select_recommendation(self, number: int) -> ActionResult:
        """Submit a recommended number; it goes through the same checks as typed input."""
        return self.submit(number)

    def delete(self, order_id: str) -> ActionResult:
        ts = self.clock_sync.server_now()
        order = self.feed.get(order_id)
        if order is None:
            return self._finish("delete", ActionKind.NOOP, "That order is no longer on the board.", ts, order_id=order_id)
        if not self.connection.connected:
            return self._finish("delete", ActionKind.FAILED, NOT_CONNECTED, ts, order_id=order_id, number=order.number)

        self.undo_buffer.remember(order)
        try:
            self.store.remove(order_path(self.room_id, order_id))
        except StoreError as e:
            logger.exception("Deleting order %s failed: %s", order_id, e)
            return self._finish(
                "delete", ActionKind.FAILED, "Could not delete the order. Please try again.", ts,
                order_id=order_id, number=order.number,
            )
        logger.info("Order %d (%s) deleted", order.number, order_id)
        return self._finish("delete", ActionKind.ACCEPTED, "Order deleted.", ts, order_id=order_id, number=order.number)

    def delete_number(self, number: int) -> ActionResult:
        """Delete the newest order carrying number."""
        order = self.find_by_number(number)
        if order is None:
            ts = self.clock_sync.server_now()
            return self._finish("delete", ActionKind.NOOP, f"Order number {number} is not on the board.", ts, number=number)
        return self.delete(order.id)

    def undo(self) -> ActionResult:
        """Re-create the last deleted order as a new entry (new id, original timestamps)."""
        ts = self.clock_sync.server_now()
        snapshot = self.undo_buffer.peek()
        if snapshot is None:
            return self._finish("undo", ActionKind.NOOP, "Nothing to undo.", ts)
        if not self.connection.connected:
            return self._finish("undo", ActionKind.FAILED, NOT_CONNECTED, ts, number=snapshot.number)
        try:
            order_id = self.store.push(orders_path(self.room_id), snapshot.to_wire())
        except StoreError as e:
            logger.exception("Undo of order %d failed: %s", snapshot.number, e)
            return self._finish(
                "undo", ActionKind.FAILED, "Could not restore the order. Please try again.", ts, number=snapshot.number
            )
        self.undo_buffer.pop()
        logger.info("Order %d restored as %s", snapshot.number, order_id)
        return self._finish(
            "undo", ActionKind.ACCEPTED, f"Order number {snapshot.number} restored.", ts,
            order_id=order_id, number=snapshot.number,
        )

    def set_ttl(self, minutes: float) -> ActionResult:
        ts = self.clock_sync.server_now()
        try:
            minutes_to_ms(minutes)
        except ValueError as e:
            return self._finish("ttl", ActionKind.REJECTED, str(e), ts)
        if not self.connection.connected:
            return self._finish("ttl", ActionKind.FAILED, NOT_CONNECTED, ts)
        try:
            self.ttl.set_ttl(minutes)
        except StoreError as e:
            logger.exception("Changing TTL failed: %s", e)
            return self._finish("ttl", ActionKind.FAILED, "Could not change the expiry time.", ts)
        return self._finish("ttl", ActionKind.ACCEPTED, f"Orders now expire after {self.ttl.minutes} min.", ts)

    def _finish(
        self,
        action: str,
        kind: ActionKind,
        message: str,
        ts: int,
        *,
        order_id: str | None = None,
        number: int | None = None,
    ) -> ActionResult:
        result = ActionResult(action=action, kind=kind, message=message, timestamp=ts, order_id=order_id, number=number)
        if kind in (ActionKind.REJECTED, ActionKind.FAILED):
            self._rejected_log.append(RejectedAction(action=action, reason=message, timestamp=ts, number=number))
        for obs in self.observers:
            obs(result)
        return result
