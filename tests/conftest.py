from datetime import datetime, timedelta, timezone

import pytest


class ManualClock:
    """Deterministic clock: wall and monotonic time move together on advance()."""

    def __init__(self, start: datetime = datetime(2026, 3, 1, 10, 0, 0, tzinfo=timezone.utc)):
        self._wall = start
        self._mono_ms = 0.0

    def now(self) -> datetime:
        return self._wall

    def monotonic_ms(self) -> float:
        return self._mono_ms

    def advance(self, seconds: float = 0.0, ms: float = 0.0) -> None:
        delta_ms = seconds * 1000.0 + ms
        self._mono_ms += delta_ms
        self._wall += timedelta(milliseconds=delta_ms)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()
