from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from core.clock import Clock, SystemClock
from core.config import AnalyticsSettings
from core.models import MetricsRecord, Round, Tap, as_utc
from telemetry import LogEvent, StructuredLogger, create_logger


def flatten_taps(rounds: Sequence[Round]) -> Tuple[Tap, ...]:
    return tuple(tap for round_ in rounds for tap in round_.taps)


def max_span(rounds: Sequence[Round]) -> int:
    levels = [r.level for r in rounds if r.is_correct]
    return max(levels) if levels else 0


def error_rate(rounds: Sequence[Round]) -> float:
    if not rounds:
        return 0.0
    failed = sum(1 for r in rounds if not r.is_correct)
    return 100.0 * failed / len(rounds)


def persistence(rounds: Sequence[Round]) -> int:
    """Rounds that were retries at their level."""
    return sum(1 for r in rounds if r.attempt > 1)


def cognitive_fluency(rounds: Sequence[Round]) -> float:
    """Mean interval between consecutive correct taps of successful rounds.

    Intervals are never taken across a round boundary. Returns 0.0 when no
    successful round has two correct taps.
    """
    pools = []
    for round_ in rounds:
        if not round_.is_correct:
            continue
        stamps = np.array([t.timestamp for t in round_.taps if t.is_correct], dtype=float)
        if stamps.size >= 2:
            pools.append(np.diff(stamps))
    if not pools:
        return 0.0
    return float(np.concatenate(pools).mean())


def self_correction_index(taps: Sequence[Tap], pre_window: int = 3, post_window: int = 3) -> float:
    """Mean percent change in tap pace right after an error.

    For each incorrect tap at index ``i`` with at least ``pre_window`` taps
    before it and ``post_window`` taps after it, compare the mean of the
    ``pre_window`` intervals ending at the error with the mean of the
    ``post_window`` intervals following it. Positive means the user slowed
    down after the error, negative means they sped up.
    """
    n = len(taps)
    if n < 2:
        return 0.0
    # intervals[k] is the gap between taps k and k + 1
    intervals = np.diff(np.array([t.timestamp for t in taps], dtype=float))
    changes = []
    for i, tap in enumerate(taps):
        if tap.is_correct or i < pre_window or i >= n - post_window:
            continue
        pre = intervals[i - pre_window:i]
        post = intervals[i:i + post_window]
        if pre.size == 0 or post.size == 0:
            continue
        pre_avg = float(pre.mean())
        if pre_avg == 0.0:
            continue
        changes.append((float(post.mean()) - pre_avg) / pre_avg * 100.0)
    return float(np.mean(changes)) if changes else 0.0


class MetricsEngine:
    """Folds a session's rounds into a MetricsRecord.

    Every sub-metric is computed independently from the same rounds, so the
    result depends only on the inputs (plus ``clock.now()`` when no session end
    time is given). Degenerate input resolves to zeros rather than raising.
    """

    def __init__(
        self,
        settings: Optional[AnalyticsSettings] = None,
        clock: Optional[Clock] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self.settings = settings or AnalyticsSettings.from_env()
        self.clock = clock or SystemClock()
        self.logger = logger or create_logger("engine", level=self.settings.log_level_value)

    def compute(
        self,
        rounds: Sequence[Round],
        session_start_time: Union[datetime, str],
        session_end_time: Optional[Union[datetime, str]] = None,
    ) -> MetricsRecord:
        rounds = tuple(rounds)
        start = as_utc(session_start_time)
        end = as_utc(session_end_time) if session_end_time is not None else self.clock.now()
        all_taps = flatten_taps(rounds)

        record = MetricsRecord(
            max_span=max_span(rounds),
            total_session_time=(end - start).total_seconds(),
            error_rate=error_rate(rounds),
            total_attempts=len(rounds),
            successful_attempts=sum(1 for r in rounds if r.is_correct),
            persistence=persistence(rounds),
            cognitive_fluency=cognitive_fluency(rounds),
            self_correction_index=self_correction_index(
                all_taps,
                pre_window=self.settings.self_correction_pre_window,
                post_window=self.settings.self_correction_post_window,
            ),
            all_taps=all_taps,
            rounds_data=rounds,
        )
        self.logger.info(
            event=LogEvent.METRICS_COMPUTED,
            message="Metrics computed",
            metadata={
                "rounds": record.total_attempts,
                "taps": len(all_taps),
                "max_span": record.max_span,
                "error_rate": round(record.error_rate, 2),
                "cognitive_fluency": round(record.cognitive_fluency, 2),
                "self_correction_index": round(record.self_correction_index, 2),
            },
        )
        return record
