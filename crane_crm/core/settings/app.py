"""Application-level settings."""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Core application settings.

    Environment variables use APP_ prefix.
    Example: APP_DEBUG=true, APP_FRONTEND_URL=https://crm.aspcranes.com
    """

    # ─────────────────────────────────────────────────────
    # OpenAPI metadata
    # ─────────────────────────────────────────────────────
    service_name: str = Field(
        default="crane-crm",
        min_length=1,
        max_length=100,
        description="Service identifier used in logs and metrics.",
    )
    title: str = Field(
        default="Crane CRM Documents & Notifications",
        min_length=1,
        max_length=200,
        description="API title shown in the OpenAPI schema.",
    )
    version: str = Field(default="0.1.0", description="API version string.")
    description: str = Field(
        default="Quotation template rendering, PDF export and multi-channel notifications.",
        max_length=1000,
    )

    # ─────────────────────────────────────────────────────
    # Runtime behaviour
    # ─────────────────────────────────────────────────────
    environment: str = Field(
        default="development",
        pattern=r"^(development|staging|production|test)$",
        description="Deployment environment name.",
    )
    debug: bool = Field(default=False, description="Enable FastAPI debug mode.")
    api_prefix: str = Field(
        default="/api",
        description="Prefix applied to every HTTP router.",
    )
    docs_enabled: bool = Field(default=True, description="Expose /docs and /openapi.json.")
    cors_origins: list[str] = Field(
        default_factory=list,
        description="Allowed CORS origins. Empty disables the CORS middleware.",
    )

    # ─────────────────────────────────────────────────────
    # Links embedded in notifications
    # ─────────────────────────────────────────────────────
    frontend_url: str = Field(
        default="http://localhost:5173",
        description="Base URL of the CRM frontend used to build deep links.",
    )

    @field_validator("api_prefix")
    @classmethod
    def normalize_prefix(cls, v: str) -> str:
        """Ensure the API prefix starts with a slash and has no trailing slash."""
        v = v.strip()
        if not v:
            return ""
        if not v.startswith("/"):
            v = f"/{v}"
        return v.rstrip("/")

    @field_validator("frontend_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Drop trailing slashes so links can be joined with f-strings."""
        return v.rstrip("/")

    @property
    def openapi_url(self) -> str | None:
        """OpenAPI schema URL, or None when docs are disabled."""
        return "/openapi.json" if self.docs_enabled else None

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
