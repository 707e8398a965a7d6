"""
DisplayClient: the customer-facing side of a room.

Wires the pieces on one EventLoop:
store → RemoteOrderFeed → ArrivalDetector → (HandlerSlot) → HighlightTracker → chime,
plus a 1 Hz highlight sweep and a 10 s expiry sweep. Rendering is not done here;
board() returns what a renderer needs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pickup_core.arrival import ArrivalDetector
from pickup_core.clock import ClockSync
from pickup_core.config import Settings, normalize_room_id
from pickup_core.connection import ConnectionStatus
from pickup_core.event_loop import EventLoop, Timer
from pickup_core.feed import RemoteOrderFeed
from pickup_core.highlight import HighlightTracker
from pickup_core.order import Order
from pickup_core.reaper import ExpiryReaper
from pickup_core.sound import AudioCue, SoundPreference
from pickup_core.store.base import RemoteStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoardEntry:
    """One card on the board. The first entry is the latest order."""

    order: Order
    is_new: bool
    is_latest: bool


class DisplayClient:
    def __init__(
        self,
        store: RemoteStore,
        room_id: str,
        loop: EventLoop,
        *,
        settings: Settings | None = None,
        sound: SoundPreference | None = None,
        cue: AudioCue | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.store = store
        self.room_id = normalize_room_id(room_id)
        self.loop = loop
        self.sound = sound
        self.clock_sync = ClockSync(loop.clock)
        self.connection = ConnectionStatus()
        self.feed = RemoteOrderFeed(store, self.room_id, tail=self.settings.display_tail)
        self.detector = ArrivalDetector(self.feed)
        self.highlights = HighlightTracker(
            clock=loop.clock,
            duration_ms=self.settings.highlight_ms,
            sound=sound,
            cue=cue,
        )
        self.reaper = ExpiryReaper(self.feed, self.clock_sync)
        self._timers: list[Timer] = []

    @property
    def orders(self) -> tuple[Order, ...]:
        return self.feed.orders

    def start(self) -> None:
        logger.info("Display starting for room %s", self.room_id)
        self.clock_sync.attach(self.store)
        self.connection.attach(self.store)
        self.detector.on_arrival.set(self.highlights.on_arrival)
        self.detector.attach()
        self.feed.start()
        self._timers.append(
            self.loop.call_every(self.settings.highlight_sweep_ms, self.highlights.sweep, name="highlight-sweep")
        )
        self._timers.append(
            self.loop.call_every(self.settings.expiry_sweep_ms, self.reaper.sweep, name="expiry-sweep")
        )

    def close(self) -> None:
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()
        self.detector.on_arrival.set(None)
        self.feed.close()
        self.connection.close()
        self.clock_sync.close()
        logger.info("Display for room %s closed", self.room_id)

    def toggle_sound(self) -> bool:
        if self.sound is None:
            return False
        return self.sound.toggle()

    def board(self) -> list[BoardEntry]:
        return [
            BoardEntry(order=o, is_new=self.highlights.is_highlighted(o.id), is_latest=(i == 0))
            for i, o in enumerate(self.feed.orders)
        ]
