"""Session lifecycle capture: event log, round bookkeeping and document storage."""

from recording.recorder import SessionRecorder
from recording.rounds import OpenRound, RoundTracker
from recording.store import InMemorySessionStore

__all__ = [
    "SessionRecorder",
    "RoundTracker",
    "OpenRound",
    "InMemorySessionStore",
]
