"""
Store layer: remote store abstraction and the in-process implementation.

RemoteStore interface; MemoryBackend / MemoryRemoteStore for tests, demos and
replays; error types shared by every implementation.
"""

from pickup_core.store.base import RemoteStore
from pickup_core.store.memory import MemoryBackend, MemoryRemoteStore
from pickup_core.store.push_id import PushIdGenerator
from pickup_core.store.types import (
    InvalidPathError,
    StoreError,
    StoreUnavailableError,
    Unsubscribe,
)

__all__ = [
    "RemoteStore",
    "MemoryBackend",
    "MemoryRemoteStore",
    "PushIdGenerator",
    "StoreError",
    "StoreUnavailableError",
    "InvalidPathError",
    "Unsubscribe",
]
