"""SMS carrier settings (Twilio Messages API).

Environment variables use SMS_ prefix.
Example: SMS_ACCOUNT_SID=AC..., SMS_AUTH_TOKEN=..., SMS_FROM_NUMBER=+15550001111
"""

from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class SmsSettings(BaseSettings):
    """Twilio credentials and HTTP client tuning for the SMS channel."""

    enabled: bool = Field(default=True, description="Allow SMS delivery when credentials exist.")
    account_sid: str | None = Field(
        default=None,
        max_length=64,
        description="Twilio account SID",
    )
    auth_token: SecretStr | None = Field(
        default=None,
        description="Twilio auth token",
    )
    from_number: str | None = Field(
        default=None,
        max_length=32,
        description="Sender phone number in E.164 format",
    )
    api_base_url: str = Field(
        default="https://api.twilio.com/2010-04-01",
        description="Twilio REST API base URL",
    )
    timeout: float = Field(
        default=10.0,
        ge=1.0,
        le=120.0,
        description="HTTP timeout for carrier calls in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="SMS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @property
    def is_configured(self) -> bool:
        """SMS can be sent only with an account SID and auth token."""
        return self.enabled and bool(self.account_sid) and self.auth_token is not None

    @property
    def messages_url(self) -> str:
        """Messages resource URL for the configured account."""
        return f"{self.api_base_url.rstrip('/')}/Accounts/{self.account_sid}/Messages.json"
