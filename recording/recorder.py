from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from core.clock import Clock, SystemClock
from core.config import AnalyticsSettings
from core.errors import InvalidStateError
from core.models import Session, SessionEvent, SessionOutcome
from telemetry import LogEvent, StructuredLogger, create_logger


class SessionRecorder:
    """Records the lifecycle and raw event log of one game session at a time.

    Event recording is best-effort: events that arrive while no session is
    active are logged and dropped. Ending a session that is not active is a
    usage error and raises ``InvalidStateError``.
    """

    def __init__(
        self,
        game_id: str,
        user_id: str,
        clock: Optional[Clock] = None,
        logger: Optional[StructuredLogger] = None,
        settings: Optional[AnalyticsSettings] = None,
    ):
        self.game_id = game_id
        self.user_id = user_id
        self.clock = clock or SystemClock()
        self.settings = settings or AnalyticsSettings.from_env()
        self.logger = logger or create_logger("recorder", level=self.settings.log_level_value)
        self._events: List[SessionEvent] = []
        self._active = False
        self._start_time: Optional[datetime] = None
        self._end_time: Optional[datetime] = None

    def _context(self) -> Dict[str, Any]:
        return {"game_id": self.game_id, "user_id": self.user_id}

    def start(self) -> None:
        # Restarting discards whatever the previous session recorded.
        self._start_time = self.clock.now()
        self._end_time = None
        self._events = []
        self._active = True
        self.logger.info(
            event=LogEvent.SESSION_STARTED,
            message="Session started",
            metadata={**self._context(), "start_time": self._start_time.isoformat()},
        )

    def record_event(self, type: str, value: Any = None, is_correct: Optional[bool] = None) -> Optional[SessionEvent]:
        if not self._active:
            self.logger.warning(
                event=LogEvent.SESSION_EVENT_DROPPED,
                message="No active session, event dropped",
                metadata={**self._context(), "type": type},
            )
            return None
        event = SessionEvent(type=type, timestamp=self.clock.now(), value=value, is_correct=is_correct)
        self._events.append(event)
        self.logger.debug(
            event=LogEvent.SESSION_EVENT_RECORDED,
            message=f"Event: {type}",
            metadata={**self._context(), "type": type, "index": len(self._events) - 1},
        )
        return event

    def end(
        self,
        outcome: Union[SessionOutcome, str],
        final_score: float,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Session:
        if not self._active or self._start_time is None:
            raise InvalidStateError("no active session")

        # Validate before touching state so a rejected end() keeps the session recording.
        session = Session(
            game_id=self.game_id,
            user_id=self.user_id,
            start_time=self._start_time,
            end_time=self.clock.now(),
            outcome=SessionOutcome(outcome),
            final_score=final_score,
            events=tuple(self._events),
            metadata=dict(metadata or {}),
        )
        self._end_time = session.end_time
        self._active = False
        self.logger.info(
            event=LogEvent.SESSION_ENDED,
            message="Session finished",
            metadata={
                **self._context(),
                "duration": self.get_duration(),
                "events": len(session.events),
                "outcome": session.outcome.value,
                "final_score": final_score,
            },
        )
        return session

    def abandon(self) -> Session:
        session = self.end(SessionOutcome.abandoned, 0, {"reason": "user_abandoned"})
        self.logger.info(
            event=LogEvent.SESSION_ABANDONED,
            message="Session abandoned",
            metadata={**self._context(), "events": len(session.events)},
        )
        return session

    def get_duration(self) -> int:
        """Whole seconds since start; frozen once the session has ended."""
        if self._start_time is None:
            return 0
        end = self._end_time or self.clock.now()
        return math.floor((end - self._start_time).total_seconds())

    def get_event_count(self) -> int:
        return len(self._events)

    def is_active(self) -> bool:
        return self._active

    @property
    def events(self) -> Tuple[SessionEvent, ...]:
        return tuple(self._events)

    @property
    def start_time(self) -> Optional[datetime]:
        return self._start_time
