"""HTTP client for the Twilio Messages API."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

from crane_crm.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from crane_crm.core.settings.sms import SmsSettings

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)


@dataclass
class SmsResult:
    """Result of an SMS send attempt."""

    success: bool
    message_id: str | None = None
    status_code: int | None = None
    response_time_ms: int | None = None
    error: str | None = None


class SmsClient:
    """Sends SMS through Twilio's REST API with httpx.

    Handles:
    - Basic auth with account SID and auth token
    - Form-encoded Messages resource POST
    - Timeout and transport errors (returned as SmsResult, never raised)
    """

    def __init__(self, settings: SmsSettings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.settings = settings
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return self.settings.is_configured

    async def send(self, to: str, body: str) -> SmsResult:
        """Send one text message.

        Args:
            to: Destination phone number.
            body: Message text.

        Returns:
            SmsResult with the carrier message SID on success.
        """
        start_time = time.time()
        form = {"To": to, "From": self.settings.from_number or "", "Body": body}
        auth = (self.settings.account_sid or "", self.settings.auth_token.get_secret_value())

        lazy_logger.debug(lambda: f"sms.send: to={to}, chars={len(body)}")

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.timeout, transport=self._transport
            ) as client:
                response = await client.post(self.settings.messages_url, data=form, auth=auth)
        except httpx.TimeoutException:
            logger.warning(
                "SMS delivery timeout",
                extra={"timeout_seconds": self.settings.timeout, "operation": "sms.send"},
            )
            return SmsResult(
                success=False,
                response_time_ms=int((time.time() - start_time) * 1000),
                error=f"Request timeout after {self.settings.timeout}s",
            )
        except httpx.HTTPError as e:
            logger.warning("SMS transport error", extra={"error": str(e), "operation": "sms.send"})
            return SmsResult(
                success=False,
                response_time_ms=int((time.time() - start_time) * 1000),
                error=str(e),
            )

        response_time_ms = int((time.time() - start_time) * 1000)
        if response.is_success:
            message_id = response.json().get("sid")
            logger.info(
                "SMS sent successfully",
                extra={"message_id": message_id, "response_time_ms": response_time_ms},
            )
            return SmsResult(
                success=True,
                message_id=message_id,
                status_code=response.status_code,
                response_time_ms=response_time_ms,
            )

        error = f"HTTP {response.status_code}"
        try:
            error = response.json().get("message") or error
        except ValueError:
            pass
        logger.warning(
            "SMS delivery failed with non-2xx status",
            extra={"status_code": response.status_code, "error": error, "operation": "sms.send"},
        )
        return SmsResult(
            success=False,
            status_code=response.status_code,
            response_time_ms=response_time_ms,
            error=error,
        )


_client: SmsClient | None = None


def get_sms_client() -> SmsClient:
    """Get or create the process-wide SMS client."""
    global _client
    if _client is None:
        from crane_crm.core.settings import get_sms_settings

        _client = SmsClient(get_sms_settings())
    return _client
