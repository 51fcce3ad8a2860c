"""
JSON structured logger.

Wraps the standard ``logging`` module and emits one JSON object per record:

    {
        "timestamp": "2026-10-19T15:30:45.123456+00:00",
        "level": "WARNING",
        "component": "recorder",
        "event": "session.event.dropped",
        "message": "No active session, event dropped",
        "metadata": {"game_id": "digit_span_v1", "type": "user_input"}
    }
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .events import LogEvent


class StructuredLogger:
    """
    JSON logger bound to one component.

    Attributes:
        component: Component name (e.g. "recorder", "engine")
        logger: Underlying Python logger instance
    """

    def __init__(
        self,
        component: str,
        level: int = logging.INFO,
        logger_name: Optional[str] = None
    ):
        """
        Args:
            component: Component identifier (e.g. "recorder")
            level: Logging level (default: INFO)
            logger_name: Custom logger name (default: cognimirror.<component>)
        """
        self.component = component
        self.logger_name = logger_name or f"cognimirror.{component}"
        self.logger = logging.getLogger(self.logger_name)
        self.logger.setLevel(level)

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(JSONFormatter())
            self.logger.addHandler(handler)

    def _log(
        self,
        level: str,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        log_level = getattr(logging, level)
        if not self.logger.isEnabledFor(log_level):
            return

        log_entry: Dict[str, Any] = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': level,
            'component': self.component,
            'event': event.value,
            'message': message,
        }
        if metadata:
            log_entry['metadata'] = metadata

        self.logger.log(log_level, json.dumps(log_entry, default=str))

    def debug(self, event: LogEvent, message: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self._log('DEBUG', event, message, metadata)

    def info(self, event: LogEvent, message: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self._log('INFO', event, message, metadata)

    def warning(self, event: LogEvent, message: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self._log('WARNING', event, message, metadata)


class JSONFormatter(logging.Formatter):
    """Passes through the JSON payload built by StructuredLogger."""

    def format(self, record: logging.LogRecord) -> str:
        return record.getMessage()


def create_logger(component: str, level: int = logging.INFO) -> StructuredLogger:
    return StructuredLogger(component=component, level=level)
