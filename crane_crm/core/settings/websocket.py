"""Settings for the in-app notification socket.

Environment variables use WS_ prefix.
Example: WS_ENABLED=false, WS_MAX_CONNECTIONS_PER_USER=5
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class WebSocketSettings(BaseSettings):
    enabled: bool = Field(default=True, description="Mount /ws/notifications and start the manager")
    max_connections: int = Field(default=10000, ge=1, le=100000, description="Per instance")
    max_connections_per_user: int = Field(default=10, ge=1, le=100, description="Browser tabs per user")
    heartbeat_interval: float = Field(
        default=30.0,
        ge=0,
        le=300,
        description="Seconds between server pings; 0 disables the heartbeat",
    )
    idle_timeout: float = Field(
        default=90.0,
        ge=0,
        le=3600,
        description="Heartbeat closes sockets silent for this long; 0 never closes",
    )

    model_config = SettingsConfigDict(
        env_prefix="WS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
