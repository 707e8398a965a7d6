"""
Store-layer types: error hierarchy and subscription callback shapes.
"""

from __future__ import annotations

from typing import Any, Callable

Unsubscribe = Callable[[], None]
ValueCallback = Callable[[Any], None]
ChildCallback = Callable[[str, Any], None]
ErrorCallback = Callable[[Exception], None]


class StoreError(Exception):
    """A remote store operation did not happen."""


class StoreUnavailableError(StoreError):
    """The client is not connected; writes fail fast instead of queueing."""


class InvalidPathError(StoreError):
    """Path is empty or contains empty segments."""


def split_path(path: str) -> list[str]:
    """'rooms/A/orders' -> ['rooms', 'A', 'orders']. Raises InvalidPathError."""
    parts = [p for p in (path or "").strip("/").split("/")]
    if not parts or any(p == "" for p in parts):
        raise InvalidPathError(f"Invalid store path: {path!r}")
    return parts
