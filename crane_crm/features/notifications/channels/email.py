"""Email channel dispatcher using the SMTP client."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import ValidationError

from crane_crm.features.notifications.channels.base import (
    DeliveryContext,
    DeliveryResult,
    NotificationContent,
    PreferenceCheckMixin,
    Recipient,
)
from crane_crm.infra.email import EmailMessage, EmailPriority, get_email_client
from crane_crm.infra.logging import get_logger

if TYPE_CHECKING:
    from crane_crm.infra.email import SMTPClient


class EmailChannelDispatcher(PreferenceCheckMixin):
    """Sends subject, plain-text message and optional HTML body over SMTP."""

    channel_name = "email"

    def __init__(self, client: SMTPClient | None = None) -> None:
        self._client = client
        self._logger = get_logger(__name__, channel=self.channel_name)

    @property
    def client(self) -> SMTPClient:
        if self._client is None:
            self._client = get_email_client()
        return self._client

    async def send(
        self,
        ctx: DeliveryContext,
        content: NotificationContent,
        recipient: Recipient,
    ) -> DeliveryResult:
        if not self.client.is_configured:
            return DeliveryResult.skipped(self.channel_name, "Email service not configured", recipient.email)
        if not recipient.email:
            return DeliveryResult.skipped(self.channel_name, "No email address")

        try:
            message = EmailMessage(
                to=[recipient.email],
                subject=content.subject or content.notification_type,
                body_text=content.message,
                body_html=content.email_html,
                priority=EmailPriority.from_notification(content.priority),
            )
        except ValidationError as e:
            self._logger.warning(
                "Invalid email message",
                extra={"user_id": recipient.id, "errors": e.error_count()},
            )
            return DeliveryResult(
                success=False,
                channel=self.channel_name,
                recipient=recipient.email,
                error=f"Invalid email message: {e.errors()[0]['msg']}",
            )

        result = await self.client.send(message)
        if result.success:
            self._logger.info(
                "Email sent",
                extra={"user_id": recipient.id, "message_id": result.message_id},
            )
            return DeliveryResult(
                success=True,
                channel=self.channel_name,
                recipient=recipient.email,
                message_id=result.message_id,
            )

        self._logger.warning(
            "Email delivery failed",
            extra={"user_id": recipient.id, "error": result.error, "error_code": result.error_code},
        )
        return DeliveryResult(
            success=False,
            channel=self.channel_name,
            recipient=recipient.email,
            error=result.error or "Unknown email error",
        )
