"""
Event loop: single-threaded, deterministic event processing.

Dispatches events to registered handlers and fires interval timers.
No async and no threads; a client's callbacks all run here, one at a time.
With a ManualClock the loop is fully deterministic (advance); with the
system clock it can run in wall-clock time (run_for).
"""

from __future__ import annotations

import heapq
import itertools
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from pickup_core.clock import LocalClock, ManualClock, system_clock_ms
from pickup_core.events import Event

logger = logging.getLogger(__name__)

T = TypeVar("T")


class HandlerSlot(Generic[T]):
    """
    Indirection cell for a callback. Subscriptions call through the slot, so the
    current handler can be swapped without tearing down and resubscribing.
    Single writer (set), many readers (__call__).
    """

    def __init__(self, handler: Callable[[T], None] | None = None) -> None:
        self._handler = handler

    @property
    def current(self) -> Callable[[T], None] | None:
        return self._handler

    def set(self, handler: Callable[[T], None] | None) -> None:
        self._handler = handler

    def __call__(self, value: T) -> None:
        handler = self._handler
        if handler is not None:
            handler(value)


@dataclass(order=True)
class Timer:
    """Handle for a repeating timer. Compare by due time, then creation order."""

    due_ms: int
    seq: int
    interval_ms: int = field(compare=False)
    callback: Callable[[], None] = field(compare=False, repr=False)
    name: str = field(default="", compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class EventLoop:
    """
    Deterministic event loop. Handlers are called in registration order
    for each event. Timers fire in due-time order; ties keep creation order.
    """

    def __init__(self, clock: LocalClock = system_clock_ms) -> None:
        self.clock = clock
        self._handlers: list[Callable[[Event], None]] = []
        self._timers: list[Timer] = []
        self._seq = itertools.count()

    def subscribe(self, handler: Callable[[Event], None]) -> None:
        """Register a handler to be called for every event."""
        self._handlers.append(handler)

    def dispatch(self, event: Event) -> None:
        """Process one event through all handlers in order."""
        for h in self._handlers:
            h(event)

    def run(self, events: list[Event]) -> None:
        """Process a sequence of events in order (e.g. a replay)."""
        for event in events:
            self.dispatch(event)

    # --- timers ---

    def call_every(self, interval_ms: int, callback: Callable[[], None], *, name: str = "") -> Timer:
        """Fire callback every interval_ms, first at now + interval_ms."""
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        timer = Timer(
            due_ms=int(self.clock()) + interval_ms,
            seq=next(self._seq),
            interval_ms=interval_ms,
            callback=callback,
            name=name,
        )
        heapq.heappush(self._timers, timer)
        logger.debug("Timer %s armed every %d ms", name or timer.seq, interval_ms)
        return timer

    def next_due(self) -> int | None:
        """Due time of the soonest live timer, or None."""
        while self._timers and self._timers[0].cancelled:
            heapq.heappop(self._timers)
        return self._timers[0].due_ms if self._timers else None

    def run_pending(self) -> int:
        """Fire every timer due at the current clock reading. Returns the count fired."""
        now = int(self.clock())
        fired = 0
        while True:
            due = self.next_due()
            if due is None or due > now:
                return fired
            timer = heapq.heappop(self._timers)
            timer.callback()
            fired += 1
            if not timer.cancelled:
                timer.due_ms += timer.interval_ms
                heapq.heappush(self._timers, timer)

    def advance(self, delta_ms: int) -> None:
        """
        Move a ManualClock forward, stopping at each timer deadline on the way so
        callbacks observe the time they were due at.
        """
        if not isinstance(self.clock, ManualClock):
            raise TypeError("advance() requires a ManualClock; use run_for() with a real clock")
        target = self.clock() + int(delta_ms)
        while True:
            due = self.next_due()
            if due is None or due > target:
                break
            if due > self.clock():
                self.clock.set(due)
            self.run_pending()
        self.clock.set(target)
        self.run_pending()

    def run_for(self, seconds: float) -> None:
        """Run timers in wall-clock time for the given duration."""
        end = time.monotonic() + seconds
        while True:
            self.run_pending()
            remaining = end - time.monotonic()
            if remaining <= 0:
                return
            due = self.next_due()
            wait = remaining if due is None else min(remaining, max(0, due - self.clock()) / 1000.0)
            time.sleep(max(wait, 0.001))

    def cancel_all(self) -> None:
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()
