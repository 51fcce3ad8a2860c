from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from core.clock import Clock, SystemClock
from core.config import AnalyticsSettings
from core.errors import InvalidStateError
from core.models import Round, Tap
from telemetry import LogEvent, StructuredLogger, create_logger


class OpenRound:
    """Taps being collected for a round that has not been submitted yet."""

    def __init__(self, level: int, expected_sequence: Sequence[Any], start_time: datetime, start_perf_ms: float, clock: Clock):
        if len(expected_sequence) != level:
            raise ValueError(f"expected sequence has {len(expected_sequence)} items, level is {level}")
        self.level = level
        self.expected_sequence: Tuple[Any, ...] = tuple(expected_sequence)
        self.start_time = start_time
        self.start_perf_ms = start_perf_ms
        self.clock = clock
        self.closed = False
        self._taps: List[Tap] = []

    def tap(self, input_value: Any) -> Tap:
        if self.closed:
            raise InvalidStateError("round already completed")
        position = len(self._taps)
        if position >= self.level:
            raise InvalidStateError(f"round at level {self.level} already has {self.level} taps")
        tap = Tap(
            timestamp=self.clock.monotonic_ms(),
            input_value=input_value,
            expected_value=self.expected_sequence[position],
            position=position,
        )
        self._taps.append(tap)
        return tap

    @property
    def taps(self) -> Tuple[Tap, ...]:
        return tuple(self._taps)

    @property
    def is_complete(self) -> bool:
        return len(self._taps) == self.level

    @property
    def has_error(self) -> bool:
        return any(not t.is_correct for t in self._taps)


class RoundTracker:
    """Per-level attempt counting and Round assembly for one session."""

    def __init__(
        self,
        clock: Optional[Clock] = None,
        logger: Optional[StructuredLogger] = None,
        settings: Optional[AnalyticsSettings] = None,
    ):
        self.clock = clock or SystemClock()
        self.settings = settings or AnalyticsSettings.from_env()
        self.logger = logger or create_logger("rounds", level=self.settings.log_level_value)
        self._attempts: Dict[int, int] = {}

    def reset(self) -> None:
        self._attempts = {}

    def next_attempt_number(self, level: int) -> int:
        attempt = self._attempts.get(level, 0) + 1
        self._attempts[level] = attempt
        return attempt

    def finalize_round(
        self,
        level: int,
        attempt_number: int,
        is_correct: bool,
        taps: Iterable[Tap],
        start_time: datetime,
        end_time: datetime,
        start_perf_ms: float,
        end_perf_ms: float,
    ) -> Round:
        # Elapsed time comes from the monotonic clock; the wall-clock times are display only.
        round_ = Round(
            level=level,
            attempt=attempt_number,
            is_correct=is_correct,
            time_taken=(end_perf_ms - start_perf_ms) / 1000.0,
            taps=tuple(taps),
            start_time=start_time,
            end_time=end_time,
        )
        self.logger.info(
            event=LogEvent.ROUND_FINALIZED,
            message=f"Round finalized at level {level}",
            metadata={
                "level": level,
                "attempt": attempt_number,
                "is_correct": is_correct,
                "taps": len(round_.taps),
                "time_taken": round_.time_taken,
            },
        )
        return round_

    def begin_round(self, level: int, expected_sequence: Sequence[Any]) -> OpenRound:
        return OpenRound(
            level=level,
            expected_sequence=expected_sequence,
            start_time=self.clock.now(),
            start_perf_ms=self.clock.monotonic_ms(),
            clock=self.clock,
        )

    def complete_round(self, open_round: OpenRound, is_correct: Optional[bool] = None) -> Round:
        if open_round.closed:
            raise InvalidStateError("round already completed")
        if is_correct is None:
            is_correct = open_round.is_complete and not open_round.has_error
        end_time = self.clock.now()
        end_perf_ms = self.clock.monotonic_ms()
        # The attempt is only counted once the round validates.
        round_ = self.finalize_round(
            level=open_round.level,
            attempt_number=self._attempts.get(open_round.level, 0) + 1,
            is_correct=is_correct,
            taps=open_round.taps,
            start_time=open_round.start_time,
            end_time=end_time,
            start_perf_ms=open_round.start_perf_ms,
            end_perf_ms=end_perf_ms,
        )
        self.next_attempt_number(open_round.level)
        open_round.closed = True
        return round_
