from __future__ import annotations


class AnalyticsError(Exception):
    """Base class for errors raised by the session analytics core."""


class InvalidStateError(AnalyticsError, RuntimeError):
    """A lifecycle operation was called in a state that does not allow it."""
