from __future__ import annotations

from collections import Counter
from typing import List, Optional, Sequence

import numpy as np
from pydantic import BaseModel, Field

from core.config import AnalyticsSettings
from core.models import AnalysisGameSession, Tap
from telemetry import LogEvent, StructuredLogger, create_logger


class SessionPoint(BaseModel):
    game_id: str
    date: str
    accuracy: float
    avg_rt: float  # ms
    max_span: int
    self_correction_rate: float
    fluency: float
    error_rate: float


class TrendPoint(BaseModel):
    date: str
    accuracy: float
    avg_rt: float  # seconds


class ProgressSummary(BaseModel):
    session_count: int = 0
    accuracy: float = 0.0
    avg_rt: float = 0.0
    max_span: int = 0
    fatigue: float = 0.0
    self_correction_rate: float = 0.0
    fluency: float = 0.0
    error_rate: float = 0.0
    retry_count: int = 0
    trend: List[TrendPoint] = Field(default_factory=list)


def mean_reaction_time(taps: Sequence[Tap]) -> float:
    """Mean non-negative gap between consecutive taps, in ms."""
    if len(taps) < 2:
        return 0.0
    gaps = np.diff(np.array([t.timestamp for t in taps], dtype=float))
    gaps = gaps[np.isfinite(gaps) & (gaps >= 0)]
    return float(gaps.mean()) if gaps.size else 0.0


def self_correction_rate(taps: Sequence[Tap]) -> float:
    """Share of incorrect taps that are immediately followed by a correct one."""
    transitions = 0
    recovered = 0
    for prev, curr in zip(taps, taps[1:]):
        if not prev.is_correct:
            transitions += 1
            if curr.is_correct:
                recovered += 1
    return recovered / transitions if transitions else 0.0


def accuracy_slope(values: Sequence[float]) -> float:
    """Least-squares slope of values against their 1-based position."""
    if len(values) < 2:
        return 0.0
    xs = np.arange(1, len(values) + 1, dtype=float)
    ys = np.asarray(values, dtype=float)
    dx = xs - xs.mean()
    den = float((dx * dx).sum())
    return float((dx * (ys - ys.mean())).sum() / den) if den else 0.0


def _safe_mean(values: Sequence[float]) -> float:
    arr = np.asarray(values, dtype=float)
    arr = arr[np.isfinite(arr)]
    return float(arr.mean()) if arr.size else 0.0


class ProgressAnalyzer:
    """Summarizes one user's analysed sessions for progress tracking."""

    def __init__(self, logger: Optional[StructuredLogger] = None, settings: Optional[AnalyticsSettings] = None):
        self.settings = settings or AnalyticsSettings.from_env()
        self.logger = logger or create_logger("progress", level=self.settings.log_level_value)

    @staticmethod
    def session_point(session: AnalysisGameSession) -> SessionPoint:
        metrics = session.metrics
        return SessionPoint(
            game_id=session.game_id,
            date=session.start_time.date().isoformat(),
            accuracy=max(0.0, min(100.0, 100.0 - metrics.error_rate)),
            avg_rt=mean_reaction_time(metrics.all_taps),
            max_span=metrics.max_span,
            self_correction_rate=self_correction_rate(metrics.all_taps),
            fluency=metrics.cognitive_fluency,
            error_rate=metrics.error_rate,
        )

    def summarize(self, sessions: Sequence[AnalysisGameSession], game_id: Optional[str] = None) -> ProgressSummary:
        users = {s.user_id for s in sessions}
        if len(users) > 1:
            raise ValueError(f"progress is tracked per user, got sessions for {sorted(users)}")

        selected = sorted(
            (s for s in sessions if game_id is None or s.game_id == game_id),
            key=lambda s: s.start_time,
        )
        if not selected:
            return ProgressSummary()

        points = [self.session_point(s) for s in selected]
        per_game = Counter(p.game_id for p in points)

        summary = ProgressSummary(
            session_count=len(points),
            accuracy=_safe_mean([p.accuracy for p in points]),
            avg_rt=_safe_mean([p.avg_rt for p in points]),
            max_span=max(p.max_span for p in points),
            fatigue=accuracy_slope([p.accuracy for p in points]),
            self_correction_rate=_safe_mean([p.self_correction_rate for p in points]),
            fluency=_safe_mean([p.fluency for p in points]),
            error_rate=_safe_mean([p.error_rate for p in points]),
            retry_count=sum(max(0, count - 1) for count in per_game.values()),
            trend=[
                TrendPoint(date=p.date, accuracy=round(p.accuracy, 1), avg_rt=round(p.avg_rt / 1000.0, 2))
                for p in points
            ],
        )
        self.logger.info(
            event=LogEvent.PROGRESS_SUMMARIZED,
            message="Progress summarized",
            metadata={
                "user_id": next(iter(users)),
                "game_id": game_id,
                "sessions": summary.session_count,
                "fatigue": round(summary.fatigue, 3),
            },
        )
        return summary
