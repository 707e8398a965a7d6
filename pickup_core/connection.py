"""
Connectivity status as reported by the remote store.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from pickup_core.store.base import RemoteStore

logger = logging.getLogger(__name__)


class ConnectionStatus:
    """Boolean connected flag plus optional listeners. False until the store reports."""

    def __init__(self) -> None:
        self.connected = False
        self._listeners: list[Callable[[bool], None]] = []
        self._unsubscribe: Callable[[], None] | None = None

    def attach(self, store: "RemoteStore") -> None:
        self.close()
        self._unsubscribe = store.on_connected(self._on_connected)

    def add_listener(self, listener: Callable[[bool], None]) -> None:
        self._listeners.append(listener)

    def _on_connected(self, value: Any) -> None:
        connected = value is True
        if connected != self.connected:
            logger.info("Remote store %s", "connected" if connected else "disconnected")
        self.connected = connected
        for listener in list(self._listeners):
            listener(connected)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
