"""
Remote store abstraction layer.

RemoteStore ABC: the hierarchical real-time database the controller and displays
share. MemoryRemoteStore implements it in-process; an adapter for a hosted
product implements the same interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pickup_core.store.types import (
    ChildCallback,
    ErrorCallback,
    Unsubscribe,
    ValueCallback,
)


class RemoteStore(ABC):
    """
    One client's connection to the remote store. Paths are slash separated
    (e.g. "rooms/A/orders"). Callbacks are delivered on the client's own loop;
    every subscription returns a callable that tears it down.
    """

    @abstractmethod
    def push(self, path: str, value: Any) -> str:
        """
        Append a child under path with a store-assigned key and return the key.
        Keys sort in creation order and are never reused.
        Raises StoreError (StoreUnavailableError when disconnected).
        """
        ...

    @abstractmethod
    def set(self, path: str, value: Any) -> None:
        """Write value at path (None deletes). Raises StoreError."""
        ...

    @abstractmethod
    def get(self, path: str) -> Any:
        """Read the current value at path (None when absent). Raises StoreError."""
        ...

    @abstractmethod
    def remove(self, path: str) -> None:
        """Delete path. Removing an absent path is a no-op. Raises StoreError."""
        ...

    @abstractmethod
    def on_value(
        self,
        path: str,
        callback: ValueCallback,
        on_error: ErrorCallback | None = None,
        *,
        limit_to_last: int | None = None,
    ) -> Unsubscribe:
        """
        Deliver the complete value at path now and after every change beneath it.
        With limit_to_last, only the last N children (by key) are included.
        """
        ...

    @abstractmethod
    def on_child_added(
        self,
        path: str,
        callback: ChildCallback,
        on_error: ErrorCallback | None = None,
        *,
        limit_to_last: int | None = None,
    ) -> Unsubscribe:
        """
        Deliver (key, value) for each existing child (last N when limited), then
        for every child added afterwards.
        """
        ...

    @abstractmethod
    def on_connected(self, callback: ValueCallback) -> Unsubscribe:
        """Deliver the boolean connectivity status now and on every change."""
        ...

    @abstractmethod
    def on_server_time_offset(self, callback: ValueCallback) -> Unsubscribe:
        """Deliver the server-time offset (ms) now and on every change."""
        ...
