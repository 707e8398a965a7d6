"""
pickup-core: order-ready board synchronization engine.

Staff controllers push order numbers to a shared remote store; display clients
keep an ordered view, highlight genuine arrivals and sweep expired orders.
No rendering and no hosted-database adapter; strong interfaces, single-threaded.
"""

__version__ = "0.1.0"

from pickup_core.events import Arrival, Event
from pickup_core.event_loop import EventLoop, HandlerSlot
from pickup_core.clock import ClockSync, ManualClock
from pickup_core.config import Settings
from pickup_core.order import DeletedOrderSnapshot, Order, OrderStatus
from pickup_core.results import ActionKind, ActionResult
from pickup_core.controller import Controller
from pickup_core.display import BoardEntry, DisplayClient

__all__ = [
    "Arrival",
    "Event",
    "EventLoop",
    "HandlerSlot",
    "ClockSync",
    "ManualClock",
    "Settings",
    "Order",
    "OrderStatus",
    "DeletedOrderSnapshot",
    "ActionKind",
    "ActionResult",
    "Controller",
    "DisplayClient",
    "BoardEntry",
]
