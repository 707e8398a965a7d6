"""
TTLConfig: the room's order lifetime.

Read on room entry; when absent (or not a positive integer) the default is
written and adopted. Later changes from any controller are followed through a
subscription. A change only affects orders created afterwards.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Callable

from pickup_core.config import DEFAULT_TTL_MS, ttl_path
from pickup_core.store.base import RemoteStore
from pickup_core.store.types import StoreError

logger = logging.getLogger(__name__)

MS_PER_MINUTE = 60 * 1000


def minutes_to_ms(minutes: float) -> int:
    """
    Convert a TTL in minutes to ms. Raises ValueError unless minutes is a
    finite positive number that comes to at least 1 ms.
    """
    if isinstance(minutes, bool) or not isinstance(minutes, (int, float)):
        raise ValueError("TTL must be a positive number of minutes.")
    if (isinstance(minutes, float) and not math.isfinite(minutes)) or minutes <= 0:
        raise ValueError("TTL must be a positive number of minutes.")
    ttl_ms = int(minutes * MS_PER_MINUTE)
    if ttl_ms < 1:
        raise ValueError("TTL must be at least 1 ms.")
    return ttl_ms


def _valid_ttl(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    ttl = int(value)
    return ttl if ttl > 0 else None


class TTLConfig:
    def __init__(self, store: RemoteStore, room_id: str, *, default_ms: int = DEFAULT_TTL_MS) -> None:
        self.store = store
        self.room_id = room_id
        self.default_ms = default_ms
        self.ttl_ms = default_ms
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def minutes(self) -> int:
        return round(self.ttl_ms / MS_PER_MINUTE)

    def load(self) -> int:
        """
        Read the stored TTL, writing the default when it is missing.
        On store errors the default is used locally and the error logged.
        """
        path = ttl_path(self.room_id)
        try:
            stored = _valid_ttl(self.store.get(path))
            if stored is None:
                logger.info("Room %s has no TTL, setting default %d ms", self.room_id, self.default_ms)
                self.store.set(path, self.default_ms)
                stored = self.default_ms
        except StoreError as e:
            logger.error("Could not load TTL for room %s: %s", self.room_id, e)
            stored = self.default_ms
        self.ttl_ms = stored
        return self.ttl_ms

    def follow(self) -> None:
        """Keep ttl_ms in step with remote changes."""
        self.close()
        self._unsubscribe = self.store.on_value(ttl_path(self.room_id), self._on_value, self._on_error)

    def _on_value(self, value: Any) -> None:
        ttl = _valid_ttl(value)
        if ttl is not None and ttl != self.ttl_ms:
            logger.info("Room %s TTL is now %d ms", self.room_id, ttl)
            self.ttl_ms = ttl

    def _on_error(self, error: Exception) -> None:
        logger.error("TTL subscription error for room %s: %s", self.room_id, error)

    def set_ttl(self, minutes: float) -> int:
        """
        Store a new TTL given in minutes. Raises ValueError for values
        minutes_to_ms refuses and StoreError when the write fails (ttl_ms
        is then unchanged).
        """
        ttl_ms = minutes_to_ms(minutes)
        self.store.set(ttl_path(self.room_id), ttl_ms)
        self.ttl_ms = ttl_ms
        logger.info("Room %s TTL set to %d min", self.room_id, minutes)
        return ttl_ms

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
