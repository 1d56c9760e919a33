"""Chronologically sortable keys for append-style writes.

Format: 8 characters of millisecond timestamp followed by 12 random
characters, all drawn from an alphabet whose order matches ASCII order so
that keys sort lexicographically by creation time.
"""
from __future__ import annotations

import secrets

from chat_client.application.ports.clock import Clock, SystemClock

PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"


class PushKeyGenerator:
    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._last_ms = -1
        self._last_random: list[int] = [0] * 12

    def __call__(self) -> str:
        now = self._clock.now_ms()
        if now == self._last_ms:
            # Same millisecond: increment the random suffix to keep ordering.
            i = 11
            while i >= 0 and self._last_random[i] == 63:
                self._last_random[i] = 0
                i -= 1
            if i >= 0:
                self._last_random[i] += 1
        else:
            self._last_ms = now
            self._last_random = [secrets.randbelow(64) for _ in range(12)]

        stamp = []
        for _ in range(8):
            stamp.append(PUSH_CHARS[now % 64])
            now //= 64
        return "".join(reversed(stamp)) + "".join(PUSH_CHARS[i] for i in self._last_random)
