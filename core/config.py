from __future__ import annotations

import logging
import os

from pydantic import BaseModel, Field, field_validator


class AnalyticsSettings(BaseModel):
    # Self-correction windows: taps looked at before/after an error. Also the
    # minimum distance an error must keep from either end of the session.
    self_correction_pre_window: int = Field(3, ge=1)
    self_correction_post_window: int = Field(3, ge=1)
    log_level: str = "INFO"
    store_max_per_user: int = Field(1000, ge=1)

    model_config = {"frozen": True}

    @field_validator("log_level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level '{value}'")
        return level

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level)

    @classmethod
    def from_env(cls) -> "AnalyticsSettings":
        """Read COGNIMIRROR_* variables; unset ones keep the defaults."""
        return cls(
            self_correction_pre_window=int(os.getenv("COGNIMIRROR_SC_PRE_WINDOW", "3")),
            self_correction_post_window=int(os.getenv("COGNIMIRROR_SC_POST_WINDOW", "3")),
            log_level=os.getenv("COGNIMIRROR_LOG_LEVEL", "INFO"),
            store_max_per_user=int(os.getenv("COGNIMIRROR_STORE_MAX_PER_USER", "1000")),
        )
