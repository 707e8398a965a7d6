"""
HighlightTracker: short-lived emphasis for newly arrived orders.

Client-local and never written back to the store. Each kick marks the order
highlighted until now + duration and rings the cue when sound is on; a
periodic sweep drops expired highlights. Independent of the order's own TTL.
"""

from __future__ import annotations

import logging

from pickup_core.clock import LocalClock, system_clock_ms
from pickup_core.config import HIGHLIGHT_DURATION_MS
from pickup_core.events import Arrival
from pickup_core.sound import AudioCue, SoundPreference

logger = logging.getLogger(__name__)


class HighlightTracker:
    def __init__(
        self,
        *,
        clock: LocalClock = system_clock_ms,
        duration_ms: int = HIGHLIGHT_DURATION_MS,
        sound: SoundPreference | None = None,
        cue: AudioCue | None = None,
    ) -> None:
        self._clock = clock
        self.duration_ms = duration_ms
        self.sound = sound
        self.cue = cue
        self._expiry: dict[str, int] = {}

    @property
    def state(self) -> dict[str, int]:
        """order id -> local time (ms) the highlight ends."""
        return dict(self._expiry)

    def is_highlighted(self, order_id: str) -> bool:
        return order_id in self._expiry

    def on_arrival(self, arrival: Arrival) -> None:
        self.kick(arrival.order_id)

    def kick(self, order_id: str) -> None:
        self._expiry[order_id] = self._clock() + self.duration_ms
        logger.debug("Highlighting %s until %d", order_id, self._expiry[order_id])
        if self.cue is None or (self.sound is not None and not self.sound.enabled):
            return
        try:
            self.cue()
        except Exception as e:  # noqa: BLE001
            logger.warning("Chime failed: %s", e)

    def sweep(self) -> list[str]:
        """Drop highlights whose end time has passed. Returns the dropped ids."""
        now = self._clock()
        expired = [oid for oid, until in self._expiry.items() if until <= now]
        for oid in expired:
            del self._expiry[oid]
        if expired:
            logger.debug("Highlights ended: %s", expired)
        return expired
