from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    """Time source: wall clock for audit timestamps, monotonic clock for elapsed-time math."""

    def now(self) -> datetime:
        ...

    def monotonic_ms(self) -> float:
        ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic_ms(self) -> float:
        return time.perf_counter() * 1000.0
