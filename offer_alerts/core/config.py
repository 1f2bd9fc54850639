"""Configuration models and YAML loader for the saved search service."""

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from offer_alerts.core.schemas import AlertFrequency, AlertTiming, Weekday


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "data/saved_searches.db"


class AlertDefaults(BaseModel):
    """Defaults applied when a saved search does not say otherwise."""

    default_frequency: AlertFrequency = AlertFrequency.DAILY
    default_day: Weekday = Weekday.MONDAY
    default_hour: int = Field(default=9, ge=0, le=23)
    default_biweekly_week: Literal[1, 2] = 1
    max_locations: int = Field(default=10, ge=1)

    @field_validator("default_frequency")
    @classmethod
    def frequency_is_active(cls, v: AlertFrequency) -> AlertFrequency:
        if v == AlertFrequency.NEVER:
            msg = "default_frequency must be an active frequency, not 'never'"
            raise ValueError(msg)
        return v

    def timing(self) -> AlertTiming:
        return AlertTiming(
            preferred_day=self.default_day,
            preferred_hour=self.default_hour,
            biweekly_week=self.default_biweekly_week,
        )


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    alerts: AlertDefaults = Field(default_factory=AlertDefaults)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
