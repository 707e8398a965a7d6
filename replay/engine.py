"""
Replay engine: runs a scripted shift through a controller and N displays.

Script rows → Events on a ManualClock EventLoop → Controller actions; displays
sweep highlights and expired orders on the same loop. A monitor connection
records every removal. After the script, the clock keeps running until the
board is empty (or the tail limit passes).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from pickup_core import Controller, DisplayClient, Event, EventLoop, ManualClock, Settings
from pickup_core.config import DEFAULT_ROOM_ID, normalize_room_id
from pickup_core.events import Arrival
from pickup_core.feed import RemoteOrderFeed
from pickup_core.order import Order
from pickup_core.results import ActionResult
from pickup_core.sound import DebouncedCue
from pickup_core.store import MemoryBackend, MemoryRemoteStore

logger = logging.getLogger(__name__)

# 2023-11-14T22:13:20Z; any fixed epoch keeps replays reproducible.
DEFAULT_START_MS = 1_700_000_000_000


@dataclass(frozen=True)
class ScriptAction:
    """Payload for a script event: one staff action."""

    action: str
    value: Any = None


@dataclass(frozen=True)
class ArrivalRecord:
    """A genuine arrival as seen by one display."""

    display: int
    at: int
    arrival: Arrival


@dataclass(frozen=True)
class Removal:
    """An order leaving the room, as observed by the monitor connection."""

    order_id: str
    number: int
    created_at: int
    expires_at: int | None
    removed_at: int

    @property
    def expired(self) -> bool:
        return self.expires_at is not None and self.expires_at <= self.removed_at


@dataclass
class ReplayResult:
    """Result of a replay: action results, arrivals per display, removals."""

    room_id: str
    displays: int
    started_at: int
    finished_at: int = 0
    seeded: int = 0
    results: list[ActionResult] = field(default_factory=list)
    arrivals: list[ArrivalRecord] = field(default_factory=list)
    removals: list[Removal] = field(default_factory=list)
    chimes: list[int] = field(default_factory=list)
    final_orders: list[Order] = field(default_factory=list)


class ReplayEngine:
    """
    Orchestrates a replay: one MemoryBackend, a shared ManualClock/EventLoop,
    one Controller and `displays` DisplayClients in the same room.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        displays: int = 1,
        seed_orders: Sequence[int] = (),
        room_id: str = DEFAULT_ROOM_ID,
        start_ms: int = DEFAULT_START_MS,
        tail_ms: int | None = None,
    ) -> None:
        if displays <= 0:
            raise ValueError(f"displays must be positive, got {displays}")
        self.settings = settings or Settings()
        self.display_count = displays
        self.seed_orders = list(seed_orders)
        self.room_id = normalize_room_id(room_id)
        self.start_ms = start_ms
        self.tail_ms = tail_ms

    def _build(self) -> None:
        self.clock = ManualClock(self.start_ms)
        self.loop = EventLoop(self.clock)
        self.backend = MemoryBackend(self.clock)
        self._controller_store = self.backend.connect()
        self.controller = Controller(
            self._controller_store,
            self.room_id,
            settings=self.settings,
            local_clock=self.clock,
        )
        self._display_stores: list[MemoryRemoteStore] = []
        self.displays: list[DisplayClient] = []
        self._cues: list[DebouncedCue] = []
        for _ in range(self.display_count):
            store = self.backend.connect()
            cue = DebouncedCue(lambda: None, duration_ms=self.settings.cue_ms, clock=self.clock)
            self._display_stores.append(store)
            self._cues.append(cue)
            self.displays.append(DisplayClient(store, self.room_id, self.loop, settings=self.settings, cue=cue))
        self._monitor = RemoteOrderFeed(self.backend.connect(), self.room_id, tail=self.settings.display_tail)
        self._known: dict[str, Order] = {}

    def _record_arrival(self, index: int, forward: Callable[[Arrival], None]) -> Callable[[Arrival], None]:
        def handler(arrival: Arrival) -> None:
            self._result.arrivals.append(ArrivalRecord(display=index, at=self.clock(), arrival=arrival))
            forward(arrival)

        return handler

    def _on_snapshot(self, orders: tuple[Order, ...]) -> None:
        current = {o.id: o for o in orders}
        now = self.clock()
        for order_id, order in self._known.items():
            if order_id not in current:
                self._result.removals.append(
                    Removal(
                        order_id=order_id,
                        number=order.number,
                        created_at=order.created_at,
                        expires_at=order.expires_at,
                        removed_at=now,
                    )
                )
        self._known = current

    def _stores_for(self, target: Any) -> list[MemoryRemoteStore]:
        """disconnect/reconnect target: controller (default), displays, display index, or all."""
        if target is None or target == "controller":
            return [self._controller_store]
        if target == "displays":
            return list(self._display_stores)
        if target == "all":
            return [self._controller_store, *self._display_stores]
        try:
            return [self._display_stores[int(target)]]
        except (ValueError, IndexError):
            raise ValueError(f"Unknown connection target: {target!r}") from None

    @staticmethod
    def _number(value: Any) -> Any:
        if isinstance(value, str):
            try:
                return float(value) if "." in value else int(value)
            except ValueError:
                return value
        return value

    def _events_from_dataframe(self, script: pd.DataFrame) -> list[Event]:
        """Build a list of Event with ScriptAction payload from a normalized script."""
        events: list[Event] = []
        for row in script.itertuples(index=False):
            ts = self.start_ms + int(round(float(row.at) * 1000))
            events.append(Event(timestamp=ts, payload=ScriptAction(action=row.action, value=row.value)))
        return events

    def _handle_event(self, event: Event) -> None:
        payload = event.payload
        if not isinstance(payload, ScriptAction):
            return
        delta = event.timestamp - self.clock()
        if delta > 0:
            self.loop.advance(delta)

        action, value = payload.action, payload.value
        result: ActionResult | None = None
        if action == "submit":
            result = self.controller.submit(value)
        elif action == "delete":
            result = self.controller.delete_number(self._number(value))
        elif action == "undo":
            result = self.controller.undo()
        elif action == "ttl":
            result = self.controller.set_ttl(self._number(value))
        elif action in ("disconnect", "reconnect"):
            for store in self._stores_for(value):
                store.set_connected(action == "reconnect")
        if result is not None:
            logger.debug("t=%d %s %r -> %s: %s", event.timestamp, action, value, result.kind.value, result.message)
            self._result.results.append(result)

    def _drain(self) -> None:
        """Keep the clock running until the board is empty or the tail limit passes."""
        now = self.clock()
        sweep = self.settings.expiry_sweep_ms
        if self.tail_ms is not None:
            deadline = now + self.tail_ms
        else:
            pending = [o.expires_at for o in self._monitor.orders if o.expires_at is not None]
            deadline = max(pending, default=now) + 2 * sweep
        while self._monitor.orders and self.clock() < deadline:
            self.loop.advance(min(sweep, deadline - self.clock()))

    def run(self, script: pd.DataFrame) -> ReplayResult:
        """
        Replay a normalized script (see replay.script_loader).

        Parameters
        ----------
        script : pd.DataFrame
            Columns at, action, value.

        Returns
        -------
        ReplayResult
            Action results, arrivals, removals and the board left at the end.
        """
        self._build()
        self._result = ReplayResult(room_id=self.room_id, displays=self.display_count, started_at=self.start_ms)

        self._monitor.add_listener(self._on_snapshot)
        self._monitor.start()
        self.controller.start()
        for number in self.seed_orders:
            if self.controller.submit(number).ok:
                self._result.seeded += 1
        for index, display in enumerate(self.displays):
            display.start()
            display.detector.on_arrival.set(self._record_arrival(index, display.highlights.on_arrival))

        logger.info("Replaying %d action(s) into room %s", len(script), self.room_id)
        self.loop.subscribe(self._handle_event)
        self.loop.run(self._events_from_dataframe(script))
        self._drain()

        self._result.finished_at = self.clock()
        self._result.chimes = [cue.plays for cue in self._cues]
        self._result.final_orders = list(self._monitor.orders)
        for display in self.displays:
            display.close()
        self.controller.close()
        self._monitor.close()
        self.loop.cancel_all()
        return self._result
