"""Engine thresholds and runtime settings."""

from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Tunable constants loaded from FOCUS_ENGINE_* environment variables/.env."""

    model_config = SettingsConfigDict(
        env_prefix="FOCUS_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    daily_capacity_minutes: int = Field(480, gt=0)
    shadow_threshold: float = 85.0
    shadow_priority_score: int = 10
    overload_threshold: float = 90.0
    survival_threshold: float = 100.0

    persona_min_completions: int = Field(5, ge=1)
    soft_ask_interval_hours: float = 24.0

    procrastination_postpones: int = Field(3, ge=1)
    morning_boost_start_hour: int = Field(6, ge=0, le=23)
    morning_boost_end_hour: int = Field(10, ge=0, le=23)

    default_task_minutes: int = Field(30, gt=0)

    log_level: str = "INFO"
    log_format: str = "console"


_SETTINGS: Optional[EngineSettings] = None


def get_settings() -> EngineSettings:
    """Return cached settings instance."""

    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = EngineSettings()
    return _SETTINGS


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""

    global _SETTINGS
    _SETTINGS = None
