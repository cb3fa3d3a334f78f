"""Email delivery over SMTP."""

from __future__ import annotations

from .client import SMTPClient, get_email_client
from .schemas import EmailMessage, EmailPriority, EmailResult

__all__ = ["EmailMessage", "EmailPriority", "EmailResult", "SMTPClient", "get_email_client"]
