from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    def now_ms(self) -> int: ...


class SystemClock:
    """Default wall-clock implementation, epoch milliseconds."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)
