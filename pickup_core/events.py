"""
Event types for the event-driven core.

Events are immutable data carriers. The loop and handlers react to them;
they do not contain business logic. Timestamps are epoch milliseconds.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Event:
    """Base type for all events. payload carries the event-specific data."""

    timestamp: int
    payload: Any = None

    def __post_init__(self) -> None:
        if not isinstance(self.timestamp, int) or isinstance(self.timestamp, bool):
            object.__setattr__(self, "timestamp", int(float(self.timestamp)))


@dataclass(frozen=True)
class Arrival:
    """Payload: an order observed after the client finished its initial load."""

    order_id: str
    number: int
