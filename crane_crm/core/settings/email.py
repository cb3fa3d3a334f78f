"""SMTP settings for the email notification channel.

Environment variables use EMAIL_ prefix.
Example: EMAIL_ENABLED=true, EMAIL_SMTP_HOST=smtp.aspcranes.com
"""

from __future__ import annotations

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EmailSettings(BaseSettings):
    """SMTP connection and sender identity.

    Unconfigured email (disabled, or no host) is not an error: the email
    channel reports ``Email service not configured`` for each attempt.
    """

    enabled: bool = Field(default=False)
    smtp_host: str | None = Field(default=None, max_length=255)
    smtp_port: int = Field(default=587, ge=1, le=65535)
    smtp_username: str | None = Field(default=None, max_length=255)
    smtp_password: SecretStr | None = None

    use_tls: bool = Field(default=True, description="STARTTLS after connecting (port 587)")
    use_ssl: bool = Field(default=False, description="Implicit TLS (port 465)")
    validate_certs: bool = True
    timeout: float = Field(default=30.0, ge=1.0, le=300.0, description="Connect and command timeout")

    default_from_email: str = Field(default="noreply@aspcranes.com", max_length=255)
    default_from_name: str = Field(default="ASP Cranes", max_length=100)

    model_config = SettingsConfigDict(
        env_prefix="EMAIL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @model_validator(mode="after")
    def _check_transport_and_credentials(self) -> EmailSettings:
        if self.use_tls and self.use_ssl:
            msg = "use_tls and use_ssl are mutually exclusive"
            raise ValueError(msg)
        if (self.smtp_username is None) != (self.smtp_password is None):
            msg = "smtp_username and smtp_password must be provided together"
            raise ValueError(msg)
        return self

    @property
    def is_configured(self) -> bool:
        return self.enabled and bool(self.smtp_host)

    @property
    def requires_auth(self) -> bool:
        return self.smtp_username is not None
