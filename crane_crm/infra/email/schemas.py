"""Email message and delivery result models."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, EmailStr, Field, model_validator


class EmailPriority(StrEnum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"

    @classmethod
    def from_notification(cls, priority: str) -> EmailPriority:
        """high and urgent notifications are flagged, low ones lowered."""
        if priority in ("high", "urgent"):
            return cls.HIGH
        if priority == "low":
            return cls.LOW
        return cls.NORMAL


class EmailMessage(BaseModel):
    """Outgoing email.

    Example:
        message = EmailMessage(
            to=["sales@aspcranes.com"],
            subject="New Lead: Acme Infra",
            body_text="New lead received from Acme Infra for 100T crawler",
        )
    """

    to: list[EmailStr] = Field(min_length=1)
    from_email: EmailStr | None = Field(default=None, description="Overrides the configured sender")
    from_name: str | None = Field(default=None, max_length=100)
    subject: str = Field(min_length=1, max_length=998)
    body_text: str | None = None
    body_html: str | None = None
    priority: EmailPriority = EmailPriority.NORMAL

    @model_validator(mode="after")
    def _require_body(self) -> EmailMessage:
        if self.body_text is None and self.body_html is None:
            msg = "Either body_text or body_html must be provided"
            raise ValueError(msg)
        return self


class EmailResult(BaseModel):
    success: bool
    message_id: str | None = None
    recipients_accepted: list[str] = Field(default_factory=list)
    recipients_rejected: list[str] = Field(default_factory=list)
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def failure_result(cls, error: str, error_code: str) -> EmailResult:
        return cls(success=False, error=error, error_code=error_code)
