"""
Outcome types for staff actions: submit, delete, undo, TTL change.

Every action returns an ActionResult instead of raising, so callers can show
the message to the user directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ActionKind(Enum):
    """How a staff action ended."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"  # validation failed; nothing was written
    FAILED = "failed"  # the remote write did not happen
    NOOP = "noop"  # nothing to do (e.g. undo with an empty buffer)


@dataclass(frozen=True)
class ActionResult:
    """Result of one staff action. Immutable."""

    action: str
    kind: ActionKind
    message: str
    timestamp: int
    order_id: str | None = None
    number: int | None = None

    @property
    def ok(self) -> bool:
        return self.kind == ActionKind.ACCEPTED


@dataclass
class RejectedAction:
    """One entry for a rejected or failed action, kept for debugging and reporting."""

    action: str
    reason: str
    timestamp: int
    number: int | None = None
