"""Session metrics and longitudinal progress analytics."""

from analytics.engine import (
    MetricsEngine,
    cognitive_fluency,
    error_rate,
    flatten_taps,
    max_span,
    persistence,
    self_correction_index,
)
from analytics.progress import ProgressAnalyzer, ProgressSummary, SessionPoint, TrendPoint

__all__ = [
    "MetricsEngine",
    "cognitive_fluency",
    "error_rate",
    "flatten_taps",
    "max_span",
    "persistence",
    "self_correction_index",
    "ProgressAnalyzer",
    "ProgressSummary",
    "SessionPoint",
    "TrendPoint",
]
