"""
Clocks and server time reconciliation.

All times are integer epoch milliseconds. A local clock is any zero-argument
callable returning ms; ClockSync adds the offset published by the remote store
so TTL comparisons agree across devices with skewed clocks.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from pickup_core.store.base import RemoteStore

logger = logging.getLogger(__name__)

LocalClock = Callable[[], int]


def system_clock_ms() -> int:
    """Wall clock in epoch milliseconds."""
    return int(time.time() * 1000)


class ManualClock:
    """Settable clock for tests, replays and simulated displays."""

    def __init__(self, start_ms: int = 0) -> None:
        self._now = int(start_ms)

    def __call__(self) -> int:
        return self._now

    def now(self) -> int:
        return self._now

    def set(self, now_ms: int) -> None:
        if now_ms < self._now:
            raise ValueError(f"Clock cannot go backwards ({now_ms} < {self._now})")
        self._now = int(now_ms)

    def advance(self, delta_ms: int) -> int:
        self.set(self._now + int(delta_ms))
        return self._now


def _coerce_offset(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if value != value:
        return 0
    return int(value)


class ClockSync:
    """
    Tracks the offset between the local clock and the store's clock.

    server_now() = local_now() + offset. Until the first offset signal arrives
    (or when the signal is null), the offset is 0. Reconnection is owned by the
    store; this class only listens.
    """

    def __init__(self, local_clock: LocalClock = system_clock_ms) -> None:
        self._local_clock = local_clock
        self._offset_ms = 0
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def offset_ms(self) -> int:
        return self._offset_ms

    def attach(self, store: "RemoteStore") -> None:
        """Subscribe to the store's server-time-offset signal."""
        self.close()
        self._unsubscribe = store.on_server_time_offset(self._on_offset)

    def _on_offset(self, value: Any) -> None:
        offset = _coerce_offset(value)
        if offset != self._offset_ms:
            logger.info("Server time offset: %d ms", offset)
        self._offset_ms = offset

    def local_now(self) -> int:
        return int(self._local_clock())

    def server_now(self) -> int:
        return self.local_now() + self._offset_ms

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
