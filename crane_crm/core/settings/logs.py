"""Logging configuration settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LoggingSettings(BaseSettings):
    """Structured logging configuration.

    Environment variables use LOG_ prefix.
    Example: LOG_LEVEL=DEBUG, LOG_JSON=false, LOG_FILE_ENABLED=true
    """

    service_name: str = Field(
        default="crane-crm",
        description="Static `service` field written on every JSON record",
    )
    level: LogLevel = Field(default="INFO", description="Root logger level")
    json_logs: bool = Field(
        default=True,
        validation_alias=AliasChoices("LOG_JSON", "json_logs"),
        description="JSON Lines output. False gives human-readable text.",
    )

    file_enabled: bool = Field(default=False, description="Also write to a rotating file")
    file_path: Path = Field(default=Path("logs/crane-crm.log.jsonl"))
    file_max_bytes: int = Field(default=10_485_760, ge=1024, le=1_073_741_824)
    file_backup_count: int = Field(default=5, ge=0, le=100)

    include_context: bool = Field(
        default=True,
        description="Inject request_id/path and dispatcher context into every record",
    )
    include_uvicorn: bool = Field(
        default=True,
        description="Route Uvicorn loggers through the root handlers",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        env_ignore_empty=True,
    )

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    @property
    def effective_file_path(self) -> Path | None:
        """The log file, or None when file logging is off."""
        return self.file_path if self.file_enabled else None

    def to_logging_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``configure_logging``."""
        return {
            "service_name": self.service_name,
            "log_level": self.level,
            "json_logs": self.json_logs,
            "file_path": self.effective_file_path,
            "file_max_bytes": self.file_max_bytes,
            "file_backup_count": self.file_backup_count,
            "include_context": self.include_context,
            "include_uvicorn": self.include_uvicorn,
        }
