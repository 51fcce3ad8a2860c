"""
Structured log event names.

Naming convention: ``<component>.<category>[.<action>]`` so events can be
filtered in a log aggregator, e.g. ``event = "session.event.dropped"``.
"""

from enum import Enum


class LogEvent(str, Enum):
    # ========== Session lifecycle ==========
    SESSION_STARTED = "session.started"
    """Recorder started (or restarted) a session."""

    SESSION_EVENT_RECORDED = "session.event.recorded"
    """Free-form event appended to the session log."""

    SESSION_EVENT_DROPPED = "session.event.dropped"
    """Event arrived while no session was active and was discarded."""

    SESSION_ENDED = "session.ended"
    """Session finalized with an outcome and score."""

    SESSION_ABANDONED = "session.abandoned"
    """Session cancelled by the controller."""

    # ========== Rounds ==========
    ROUND_FINALIZED = "round.finalized"
    """Round record assembled from its taps."""

    # ========== Analytics ==========
    METRICS_COMPUTED = "metrics.computed"
    """Metrics record derived from a round list."""

    PROGRESS_SUMMARIZED = "progress.summarized"
    """Longitudinal summary built from a user's analysed sessions."""

    # ========== Storage ==========
    STORE_SAVED = "store.saved"
    """Document written to the session store."""
