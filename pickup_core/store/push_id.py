"""
Chronologically sortable child keys.

20 characters: 8 encode the creation time in ms, 12 are random. Keys created in
the same millisecond increment the random part, so lexical order is creation
order within one generator and collisions across generators are negligible.
"""

from __future__ import annotations

import random

from pickup_core.clock import LocalClock, system_clock_ms

PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"


class PushIdGenerator:
    def __init__(self, clock: LocalClock = system_clock_ms, rng: random.Random | None = None) -> None:
        self._clock = clock
        self._rng = rng or random.Random()
        self._last_ms = -1
        self._last_rand = [0] * 12

    def __call__(self) -> str:
        now = int(self._clock())
        if now <= self._last_ms:
            # Same (or earlier) millisecond: bump the random tail by one, carrying over.
            i = 11
            while i >= 0 and self._last_rand[i] == 63:
                self._last_rand[i] = 0
                i -= 1
            if i >= 0:
                self._last_rand[i] += 1
        else:
            self._last_rand = [self._rng.randrange(64) for _ in range(12)]
        self._last_ms = max(now, self._last_ms)

        ts = self._last_ms
        time_chars = []
        for _ in range(8):
            time_chars.append(PUSH_CHARS[ts % 64])
            ts //= 64
        return "".join(reversed(time_chars)) + "".join(PUSH_CHARS[r] for r in self._last_rand)
