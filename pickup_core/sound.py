"""
Sound: the persisted on/off preference and the audio cue.

SoundPreference is explicit client configuration: load() once at start, saved
on every change. It lives in a small JSON settings file under a fixed key;
the first run writes and adopts True.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Protocol

from pickup_core.clock import LocalClock, system_clock_ms
from pickup_core.config import CUE_DURATION_MS, SOUND_SETTING_KEY

logger = logging.getLogger(__name__)


class AudioCue(Protocol):
    """Plays the arrival chime. May raise; callers treat failures as non-fatal."""

    def __call__(self) -> None:
        ...


class SoundPreference:
    def __init__(self, path: str | Path, *, key: str = SOUND_SETTING_KEY, default: bool = True) -> None:
        self.path = Path(path)
        self.key = key
        self.default = default
        self.enabled = default

    def load(self) -> bool:
        """Read the saved value; on first run (or unreadable file) save and adopt the default."""
        data = self._read()
        value = data.get(self.key)
        if isinstance(value, bool):
            self.enabled = value
            logger.info("Loaded sound setting: %s", "on" if value else "off")
        else:
            self.enabled = self.default
            data[self.key] = self.default
            self._write(data)
            logger.info("First run, sound defaults to %s", "on" if self.default else "off")
        return self.enabled

    def set_enabled(self, enabled: bool) -> None:
        self.enabled = bool(enabled)
        data = self._read()
        data[self.key] = self.enabled
        self._write(data)
        logger.info("Sound setting changed: %s", "on" if self.enabled else "off")

    def toggle(self) -> bool:
        self.set_enabled(not self.enabled)
        return self.enabled

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Unreadable settings file %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as e:
            logger.error("Could not save settings to %s: %s", self.path, e)


class DebouncedCue:
    """Ignores plays while the previous chime is still sounding."""

    def __init__(
        self,
        player: Callable[[], None],
        *,
        duration_ms: int = CUE_DURATION_MS,
        clock: LocalClock = system_clock_ms,
    ) -> None:
        self._player = player
        self._duration_ms = duration_ms
        self._clock = clock
        self._playing_until = -1
        self.plays = 0

    def __call__(self) -> None:
        now = self._clock()
        if now < self._playing_until:
            logger.debug("Chime still playing, skipped")
            return
        self._playing_until = now + self._duration_ms
        self.plays += 1
        self._player()
