from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator
from pydantic.alias_generators import to_camel


# Stored documents keep camelCase keys; Python code uses snake_case.
_DOCUMENT_CONFIG = {"frozen": True, "populate_by_name": True, "alias_generator": to_camel}


def as_utc(value: Any) -> Any:
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SessionOutcome(str, Enum):
    completed = "completed"
    abandoned = "abandoned"


class Tap(BaseModel):
    """One user input inside a round. Timestamps are monotonic milliseconds."""

    timestamp: float
    input_value: Any
    expected_value: Any
    position: int = Field(ge=0)

    model_config = _DOCUMENT_CONFIG

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_correct(self) -> bool:
        return self.input_value == self.expected_value


class Round(BaseModel):
    """One attempt at reproducing a sequence of ``level`` symbols."""

    level: int = Field(gt=0)
    attempt: int = Field(ge=1)
    is_correct: bool
    time_taken: float = Field(ge=0.0)  # seconds, from the monotonic clock
    taps: Tuple[Tap, ...] = ()
    start_time: datetime
    end_time: datetime

    model_config = _DOCUMENT_CONFIG

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> Any:
        return as_utc(value)

    @field_validator("taps")
    @classmethod
    def _check_positions(cls, taps: Tuple[Tap, ...]) -> Tuple[Tap, ...]:
        for index, tap in enumerate(taps):
            if tap.position != index:
                raise ValueError(f"tap positions must be contiguous from 0 (index {index} has position {tap.position})")
        return taps

    @model_validator(mode="after")
    def _check_length(self) -> "Round":
        if len(self.taps) > self.level:
            raise ValueError(f"round at level {self.level} cannot hold {len(self.taps)} taps")
        if self.is_correct and len(self.taps) != self.level:
            raise ValueError(f"successful round at level {self.level} must have {self.level} taps, got {len(self.taps)}")
        return self


class SessionEvent(BaseModel):
    """Free-form audit log entry. Not used for metric computation."""

    type: str
    timestamp: datetime
    value: Any = None
    is_correct: Optional[bool] = None

    model_config = _DOCUMENT_CONFIG

    @field_validator("timestamp", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> Any:
        return as_utc(value)


class Session(BaseModel):
    game_id: str
    user_id: str
    start_time: datetime
    end_time: datetime
    outcome: SessionOutcome
    final_score: float = 0.0
    events: Tuple[SessionEvent, ...] = ()
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = _DOCUMENT_CONFIG

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> Any:
        return as_utc(value)

    @property
    def duration_seconds(self) -> float:
        return (self.end_time - self.start_time).total_seconds()

    @property
    def document_id(self) -> str:
        return document_key(self.user_id, self.start_time)


class MetricsRecord(BaseModel):
    # performance
    max_span: int = 0
    total_session_time: float = 0.0
    error_rate: float = Field(0.0, ge=0.0, le=100.0)
    total_attempts: int = 0
    successful_attempts: int = 0
    # process
    persistence: int = 0
    cognitive_fluency: float = 0.0
    self_correction_index: float = 0.0
    # raw
    all_taps: Tuple[Tap, ...] = ()
    rounds_data: Tuple[Round, ...] = ()

    model_config = _DOCUMENT_CONFIG


class AnalysisGameSession(BaseModel):
    game_id: str
    user_id: str
    user_name: str = ""
    start_time: datetime
    end_time: datetime
    metrics: MetricsRecord
    rounds: Tuple[Round, ...] = ()

    model_config = _DOCUMENT_CONFIG

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> Any:
        return as_utc(value)

    @property
    def document_id(self) -> str:
        return document_key(self.user_id, self.start_time)

    @classmethod
    def from_metrics(cls, session: Session, metrics: MetricsRecord, user_name: str = "") -> "AnalysisGameSession":
        return cls(
            game_id=session.game_id,
            user_id=session.user_id,
            user_name=user_name,
            start_time=session.start_time,
            end_time=session.end_time,
            metrics=metrics,
            rounds=metrics.rounds_data,
        )


def document_key(user_id: str, start_time: datetime) -> str:
    return f"{user_id}_{start_time.isoformat()}"
