"""
Settings for controller and display clients.

Defaults live here as module constants; Settings.from_env() lets a deployment
override them through PICKUP_* environment variables.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_TTL_MS = 5 * 60 * 1000
TTL_OPTIONS_MINUTES = (3, 5, 10, 15)

HIGHLIGHT_DURATION_MS = 5_000
HIGHLIGHT_SWEEP_MS = 1_000
EXPIRY_SWEEP_MS = 10_000

# Child-added tail sizes (last N children) per consumer.
DISPLAY_TAIL = 50
CONTROLLER_TAIL = 10

RECOMMENDATION_CAP = 999
RECOMMENDATION_COUNT = 3

SOUND_SETTING_KEY = "pickupDisplaySoundEnabled"
CUE_DURATION_MS = 400

DEFAULT_ROOM_ID = "CAFE01"
DEFAULT_SETTINGS_PATH = Path.home() / ".pickup_board" / "settings.json"

ENV_PREFIX = "PICKUP_"


@dataclass(frozen=True)
class Settings:
    """Tunables shared by controller, display and replay."""

    default_ttl_ms: int = DEFAULT_TTL_MS
    highlight_ms: int = HIGHLIGHT_DURATION_MS
    highlight_sweep_ms: int = HIGHLIGHT_SWEEP_MS
    expiry_sweep_ms: int = EXPIRY_SWEEP_MS
    display_tail: int = DISPLAY_TAIL
    controller_tail: int = CONTROLLER_TAIL
    cue_ms: int = CUE_DURATION_MS
    default_room: str = DEFAULT_ROOM_ID
    settings_path: str = str(DEFAULT_SETTINGS_PATH)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "Settings":
        """
        Read overrides such as PICKUP_DEFAULT_TTL_MS or PICKUP_SETTINGS_PATH.
        Unparseable or non-positive integers are ignored with a warning.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw.strip() == "":
                continue
            if f.type in ("int", int):
                try:
                    value = int(raw)
                except ValueError:
                    logger.warning("Ignoring %s%s=%r: not an integer", ENV_PREFIX, f.name.upper(), raw)
                    continue
                if value <= 0:
                    logger.warning("Ignoring %s%s=%r: must be positive", ENV_PREFIX, f.name.upper(), raw)
                    continue
                values[f.name] = value
            else:
                values[f.name] = raw.strip()
        return cls(**values)


def normalize_room_id(room_id: str | None) -> str:
    """Room ids are opaque; only surrounding whitespace is dropped and emptiness rejected."""
    room = (room_id or "").strip()
    if not room:
        raise ValueError("room id must not be empty")
    return room


def orders_path(room_id: str) -> str:
    return f"rooms/{room_id}/orders"


def order_path(room_id: str, order_id: str) -> str:
    return f"rooms/{room_id}/orders/{order_id}"


def ttl_path(room_id: str) -> str:
    return f"rooms/{room_id}/config/ttl"
