"""Notification engine settings."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

Priority = Literal["low", "medium", "high", "urgent"]


class NotificationSettings(BaseSettings):
    """Notification dispatch and scheduled-sweep configuration.

    Environment variables use NOTIFY_ prefix.
    Example: NOTIFY_SWEEP_INTERVAL_SECONDS=30
    """

    sweep_enabled: bool = Field(
        default=True,
        description="Run the scheduled-notification sweep in the application process.",
    )
    sweep_interval_seconds: int = Field(
        default=60,
        ge=5,
        le=3600,
        description="Interval between scheduled-notification sweeps.",
    )
    sweep_batch_size: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Maximum due rows processed per sweep.",
    )
    default_priority: Priority = Field(default="medium")
    use_builtin_defaults: bool = Field(
        default=True,
        description="Fall back to built-in templates/rules when the database has none.",
    )
    seed_defaults_on_startup: bool = Field(
        default=False,
        description="Insert the built-in templates and rules into empty tables at startup.",
    )

    model_config = SettingsConfigDict(
        env_prefix="NOTIFY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
