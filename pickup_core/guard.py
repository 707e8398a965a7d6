"""
DedupGuard: best-effort duplicate number check before a submission.

Checks the client's current local view only. Two controllers submitting the
same number within one propagation delay can both pass; that race is accepted.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from pickup_core.clock import ClockSync
from pickup_core.order import Order


class DedupGuard:
    """orders is read on every check, so the guard always sees the latest view."""

    def __init__(self, orders: Callable[[], Iterable[Order]], clock_sync: ClockSync | None = None) -> None:
        self._orders = orders
        self.clock_sync = clock_sync

    def active_numbers(self) -> set[int]:
        """Numbers of orders in the local view that have not expired."""
        orders = self._orders()
        if self.clock_sync is None:
            return {o.number for o in orders}
        now = self.clock_sync.server_now()
        return {o.number for o in orders if not o.is_expired(now)}

    def check(self, number: int) -> str | None:
        """Return a user-facing rejection message, or None to allow."""
        if number in self.active_numbers():
            return f"Order number {number} is already on the board."
        return None

    def __call__(self, number: int) -> str | None:
        return self.check(number)
