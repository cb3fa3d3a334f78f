"""SMS delivery through the carrier REST API."""

from __future__ import annotations

from .client import SmsClient, SmsResult, get_sms_client

__all__ = ["SmsClient", "SmsResult", "get_sms_client"]
