"""
In-process remote store: a shared backend plus one connection per client.

No network. MemoryBackend holds the tree and hands out MemoryRemoteStore
connections; each connection has its own connectivity flag, server-time offset
and subscriptions. Writers see their own writes immediately; other clients see
them immediately too, or on flush() when the backend is created with
deferred=True (models propagation delay).
"""

from __future__ import annotations

import copy
import logging
from collections import deque
from typing import Any, Callable

from pickup_core.clock import LocalClock, system_clock_ms
from pickup_core.store.base import RemoteStore
from pickup_core.store.push_id import PushIdGenerator
from pickup_core.store.types import (
    ChildCallback,
    ErrorCallback,
    StoreError,
    StoreUnavailableError,
    Unsubscribe,
    ValueCallback,
    split_path,
)

logger = logging.getLogger(__name__)

_MISSING = object()


def _limit(value: Any, limit_to_last: int | None) -> Any:
    """Last N children by key, for dict values."""
    if limit_to_last is None or not isinstance(value, dict):
        return value
    keys = sorted(value)[-limit_to_last:] if limit_to_last > 0 else []
    return {k: value[k] for k in keys}


class _Subscription:
    def __init__(
        self,
        parts: list[str],
        kind: str,
        callback: Callable[..., None],
        on_error: ErrorCallback | None,
        limit_to_last: int | None,
    ) -> None:
        self.parts = parts
        self.kind = kind
        self.callback = callback
        self.on_error = on_error
        self.limit_to_last = limit_to_last
        self.active = True
        self.last_value: Any = _MISSING
        self.known_keys: set[str] = set()


class MemoryBackend:
    """
    The shared tree. Server clock = clock(); connections report
    server_time_offset to their clients to bridge local clock skew.
    """

    def __init__(self, clock: LocalClock = system_clock_ms, *, deferred: bool = False) -> None:
        self.clock = clock
        self.deferred = deferred
        self._root: dict[str, Any] = {}
        self._connections: list["MemoryRemoteStore"] = []
        self._pending: deque["MemoryRemoteStore"] = deque()
        self._push_id = PushIdGenerator(clock)
        self.write_count = 0

    def connect(self, *, server_time_offset: int = 0, connected: bool = True) -> "MemoryRemoteStore":
        """Open a new client connection."""
        conn = MemoryRemoteStore(self, server_time_offset=server_time_offset, connected=connected)
        self._connections.append(conn)
        return conn

    # --- tree access ---

    def read(self, parts: list[str]) -> Any:
        node: Any = self._root
        for p in parts:
            if not isinstance(node, dict) or p not in node:
                return None
            node = node[p]
        return copy.deepcopy(node)

    def write(self, parts: list[str], value: Any, origin: "MemoryRemoteStore | None" = None) -> None:
        if value is None:
            self._delete(parts)
        else:
            node = self._root
            for p in parts[:-1]:
                child = node.get(p)
                if not isinstance(child, dict):
                    child = {}
                    node[p] = child
                node = child
            node[parts[-1]] = copy.deepcopy(value)
        self.write_count += 1
        self._propagate(origin)

    def _delete(self, parts: list[str]) -> None:
        trail: list[tuple[dict[str, Any], str]] = []
        node: Any = self._root
        for p in parts:
            if not isinstance(node, dict) or p not in node:
                return
            trail.append((node, p))
            node = node[p]
        parent, key = trail.pop()
        del parent[key]
        # Prune parents left empty, as a hierarchical store does.
        while trail and not parent:
            parent, key = trail.pop()
            del parent[key]

    def next_key(self) -> str:
        return self._push_id()

    # --- propagation ---

    def _propagate(self, origin: "MemoryRemoteStore | None") -> None:
        for conn in list(self._connections):
            if not conn.connected:
                continue
            if conn is origin or not self.deferred:
                conn.refresh()
            elif conn not in self._pending:
                self._pending.append(conn)

    def flush(self) -> int:
        """Deliver deferred notifications. Returns the number of connections refreshed."""
        count = 0
        while self._pending:
            conn = self._pending.popleft()
            if conn.connected:
                conn.refresh()
                count += 1
        return count

    def _forget(self, conn: "MemoryRemoteStore") -> None:
        if conn in self._connections:
            self._connections.remove(conn)


class MemoryRemoteStore(RemoteStore):
    """A client's connection to a MemoryBackend."""

    def __init__(self, backend: MemoryBackend, *, server_time_offset: int = 0, connected: bool = True) -> None:
        self._backend = backend
        self._connected = connected
        self._offset = server_time_offset
        self._subs: list[_Subscription] = []
        self._connected_listeners: list[ValueCallback] = []
        self._offset_listeners: list[ValueCallback] = []
        self._write_error: StoreError | None = None

    @property
    def connected(self) -> bool:
        return self._connected

    # --- controls ---

    def set_connected(self, connected: bool) -> None:
        """Simulate losing or regaining the connection. Reconnecting resyncs subscriptions."""
        if connected == self._connected:
            return
        self._connected = connected
        logger.info("Memory store connection %s", "restored" if connected else "lost")
        for cb in list(self._connected_listeners):
            cb(connected)
        if connected:
            self.refresh()

    def set_server_time_offset(self, offset_ms: int) -> None:
        self._offset = offset_ms
        for cb in list(self._offset_listeners):
            cb(offset_ms)

    def fail_writes(self, error: StoreError | None) -> None:
        """Make subsequent writes raise error (None restores normal behavior)."""
        self._write_error = error

    def emit_error(self, error: Exception) -> None:
        """Deliver an error to every subscription's on_error callback."""
        for sub in list(self._subs):
            if sub.active and sub.on_error is not None:
                sub.on_error(error)

    def close(self) -> None:
        for sub in self._subs:
            sub.active = False
        self._subs.clear()
        self._connected_listeners.clear()
        self._offset_listeners.clear()
        self._backend._forget(self)

    # --- RemoteStore ---

    def _check_writable(self) -> None:
        if not self._connected:
            raise StoreUnavailableError("Not connected to the remote store")
        if self._write_error is not None:
            raise self._write_error

    def push(self, path: str, value: Any) -> str:
        parts = split_path(path)
        self._check_writable()
        key = self._backend.next_key()
        self._backend.write(parts + [key], value, origin=self)
        return key

    def set(self, path: str, value: Any) -> None:
        parts = split_path(path)
        self._check_writable()
        self._backend.write(parts, value, origin=self)

    def get(self, path: str) -> Any:
        parts = split_path(path)
        if not self._connected:
            raise StoreUnavailableError("Not connected to the remote store")
        return self._backend.read(parts)

    def remove(self, path: str) -> None:
        parts = split_path(path)
        self._check_writable()
        self._backend.write(parts, None, origin=self)

    def on_value(
        self,
        path: str,
        callback: ValueCallback,
        on_error: ErrorCallback | None = None,
        *,
        limit_to_last: int | None = None,
    ) -> Unsubscribe:
        return self._subscribe(split_path(path), "value", callback, on_error, limit_to_last)

    def on_child_added(
        self,
        path: str,
        callback: ChildCallback,
        on_error: ErrorCallback | None = None,
        *,
        limit_to_last: int | None = None,
    ) -> Unsubscribe:
        return self._subscribe(split_path(path), "child_added", callback, on_error, limit_to_last)

    def on_connected(self, callback: ValueCallback) -> Unsubscribe:
        self._connected_listeners.append(callback)
        callback(self._connected)
        return lambda: self._drop(self._connected_listeners, callback)

    def on_server_time_offset(self, callback: ValueCallback) -> Unsubscribe:
        self._offset_listeners.append(callback)
        callback(self._offset)
        return lambda: self._drop(self._offset_listeners, callback)

    @staticmethod
    def _drop(listeners: list[ValueCallback], callback: ValueCallback) -> None:
        if callback in listeners:
            listeners.remove(callback)

    # --- delivery ---

    def _subscribe(
        self,
        parts: list[str],
        kind: str,
        callback: Callable[..., None],
        on_error: ErrorCallback | None,
        limit_to_last: int | None,
    ) -> Unsubscribe:
        sub = _Subscription(parts, kind, callback, on_error, limit_to_last)
        self._subs.append(sub)
        if self._connected:
            self._deliver(sub)

        def unsubscribe() -> None:
            sub.active = False
            if sub in self._subs:
                self._subs.remove(sub)

        return unsubscribe

    def refresh(self) -> None:
        """Bring every subscription up to date with the backend. Child events go first."""
        subs = [s for s in self._subs if s.active]
        for sub in subs:
            if sub.kind == "child_added":
                self._deliver(sub)
        for sub in subs:
            if sub.kind == "value":
                self._deliver(sub)

    def _deliver(self, sub: _Subscription) -> None:
        value = _limit(self._backend.read(sub.parts), sub.limit_to_last)
        if sub.kind == "value":
            if value == sub.last_value:
                return
            sub.last_value = value
            sub.callback(copy.deepcopy(value))
            return
        children = value if isinstance(value, dict) else {}
        added = sorted(k for k in children if k not in sub.known_keys)
        # Window semantics: a child that drops out of the last-N window and
        # comes back is reported again.
        sub.known_keys = set(children)
        for key in added:
            if not sub.active:
                return
            sub.callback(key, copy.deepcopy(children[key]))
