"""
Order: one customer-facing ready number on the board.

Immutable. The id is assigned by the remote store; the core never invents one.
Parsing from remote data is defensive: malformed fields are defaulted, never raised.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

MIN_ORDER_NUMBER = 1
MAX_ORDER_NUMBER = 999_999
MAX_ORDER_DIGITS = 6

_DIGITS_RE = re.compile(r"^[0-9]+$")


class OrderStatus(Enum):
    READY = "ready"
    DONE = "done"
    REMOVED = "removed"

    @classmethod
    def parse(cls, value: Any) -> "OrderStatus":
        """Unrecognized or missing values are treated as READY."""
        if isinstance(value, OrderStatus):
            return value
        for status in cls:
            if status.value == value:
                return status
        return cls.READY


def _wire(number: int, status: OrderStatus, created_at: int, expires_at: int | None) -> dict[str, Any]:
    """Remote representation of an order (without the id, which is the child key)."""
    data: dict[str, Any] = {"number": number, "status": status.value, "createdAt": created_at}
    if expires_at is not None:
        data["expiresAt"] = expires_at
    return data


@dataclass(frozen=True)
class Order:
    """An order as seen by a client. expires_at is None only for malformed remote entries."""

    id: str
    number: int
    created_at: int
    expires_at: int | None = None
    status: OrderStatus = OrderStatus.READY

    def is_expired(self, server_now: int) -> bool:
        """True when expires_at is set and not after server_now."""
        return self.expires_at is not None and self.expires_at <= server_now

    def to_wire(self) -> dict[str, Any]:
        return _wire(self.number, self.status, self.created_at, self.expires_at)


@dataclass(frozen=True)
class DeletedOrderSnapshot:
    """Fields of an order captured right before it was deleted. Used for undo."""

    number: int
    created_at: int
    expires_at: int | None
    status: OrderStatus = OrderStatus.READY

    @classmethod
    def of(cls, order: Order) -> "DeletedOrderSnapshot":
        return cls(
            number=order.number,
            created_at=order.created_at,
            expires_at=order.expires_at,
            status=order.status,
        )

    def to_wire(self) -> dict[str, Any]:
        return _wire(self.number, self.status, self.created_at, self.expires_at)


def new_order_payload(number: int, created_at: int, ttl_ms: int) -> dict[str, Any]:
    """Wire payload for a fresh order. expiresAt is fixed at creation time."""
    if ttl_ms <= 0:
        raise ValueError(f"ttl_ms must be positive, got {ttl_ms}")
    return _wire(number, OrderStatus.READY, created_at, created_at + ttl_ms)


def _as_int(value: Any, default: int | None) -> int | None:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value else default
    if isinstance(value, str):
        try:
            return int(float(value.strip()))
        except ValueError:
            return default
    return default


def parse_order(key: str, raw: Any) -> Order | None:
    """
    Build an Order from a remote child. Missing number/createdAt become 0,
    a missing or falsy expiresAt becomes None, unknown status becomes READY.
    Returns None (and logs) only when the child is not a mapping at all.
    """
    if not isinstance(raw, dict):
        logger.warning("Skipping malformed order %s: %r", key, raw)
        return None
    expires_at = _as_int(raw.get("expiresAt"), None)
    return Order(
        id=str(key),
        number=_as_int(raw.get("number"), 0) or 0,
        created_at=_as_int(raw.get("createdAt"), 0) or 0,
        expires_at=expires_at if expires_at else None,
        status=OrderStatus.parse(raw.get("status")),
    )


def sort_orders(orders: list[Order]) -> list[Order]:
    """Newest first by created_at; ties broken by number, highest first."""
    return sorted(orders, key=lambda o: (o.created_at, o.number), reverse=True)


def parse_order_number(text: Any) -> int:
    """
    Validate staff input: 1-6 digits, positive. Accepts ints as well.
    Raises ValueError with a user-facing message.
    """
    if isinstance(text, bool):
        raise ValueError("Order number must contain digits only.")
    if isinstance(text, int):
        value = text
    else:
        s = str(text or "").strip()
        if not s:
            raise ValueError("Please enter an order number.")
        if len(s) > MAX_ORDER_DIGITS:
            raise ValueError(f"Order numbers have at most {MAX_ORDER_DIGITS} digits.")
        if not _DIGITS_RE.match(s):
            raise ValueError("Order number must contain digits only.")
        value = int(s)
    if not MIN_ORDER_NUMBER <= value <= MAX_ORDER_NUMBER:
        raise ValueError(
            f"Order number must be between {MIN_ORDER_NUMBER} and {MAX_ORDER_NUMBER}."
        )
    return value
