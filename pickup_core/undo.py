"""
UndoBuffer: remembers recently deleted orders so a delete can be reverted.

A bounded stack of snapshots; depth 1 keeps only the most recent delete. Undo
re-creates the order with a new id; it does not restore the old identity.
"""

from __future__ import annotations

from collections import deque

from pickup_core.order import DeletedOrderSnapshot, Order


class UndoBuffer:
    def __init__(self, depth: int = 1) -> None:
        if depth <= 0:
            raise ValueError(f"depth must be positive, got {depth}")
        self._stack: deque[DeletedOrderSnapshot] = deque(maxlen=depth)

    def __len__(self) -> int:
        return len(self._stack)

    def remember(self, order: Order) -> DeletedOrderSnapshot:
        """Capture order before it is deleted. The oldest snapshot falls off when full."""
        snapshot = DeletedOrderSnapshot.of(order)
        self._stack.append(snapshot)
        return snapshot

    def peek(self) -> DeletedOrderSnapshot | None:
        return self._stack[-1] if self._stack else None

    def pop(self) -> DeletedOrderSnapshot | None:
        return self._stack.pop() if self._stack else None

    def clear(self) -> None:
        self._stack.clear()
