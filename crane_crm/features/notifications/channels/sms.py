"""SMS channel dispatcher using the Twilio client."""

from __future__ import annotations

from typing import TYPE_CHECKING

from crane_crm.features.notifications.channels.base import (
    DeliveryContext,
    DeliveryResult,
    NotificationContent,
    PreferenceCheckMixin,
    Recipient,
)
from crane_crm.infra.logging import get_logger
from crane_crm.infra.sms import get_sms_client

if TYPE_CHECKING:
    from crane_crm.infra.sms import SmsClient


class SmsChannelDispatcher(PreferenceCheckMixin):
    """Sends the single-line SMS rendering of a notification."""

    channel_name = "sms"

    def __init__(self, client: SmsClient | None = None) -> None:
        self._client = client
        self._logger = get_logger(__name__, channel=self.channel_name)

    @property
    def client(self) -> SmsClient:
        if self._client is None:
            self._client = get_sms_client()
        return self._client

    async def send(
        self,
        ctx: DeliveryContext,
        content: NotificationContent,
        recipient: Recipient,
    ) -> DeliveryResult:
        if not self.client.is_configured:
            return DeliveryResult.skipped(self.channel_name, "SMS service not configured", recipient.phone)
        if not recipient.phone:
            return DeliveryResult.skipped(self.channel_name, "No phone number")

        result = await self.client.send(recipient.phone, content.sms_text)
        if not result.success:
            self._logger.warning(
                "SMS delivery failed",
                extra={"user_id": recipient.id, "status_code": result.status_code, "error": result.error},
            )
        return DeliveryResult(
            success=result.success,
            channel=self.channel_name,
            recipient=recipient.phone,
            message_id=result.message_id,
            error=None if result.success else (result.error or "Unknown SMS error"),
        )
