"""In-app channel: inbox row plus live WebSocket push."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from crane_crm.features.notifications.channels.base import (
    DeliveryContext,
    DeliveryResult,
    NotificationContent,
    PreferenceCheckMixin,
    Recipient,
)
from crane_crm.features.notifications.models import Notification
from crane_crm.infra.logging import get_logger
from crane_crm.infra.realtime import get_connection_manager

if TYPE_CHECKING:
    from crane_crm.infra.realtime import ConnectionManager


class InAppChannelDispatcher(PreferenceCheckMixin):
    """Stores the notification in the user's inbox and pushes it live.

    The stored row is the delivery. The WebSocket push is best effort: a
    failure is logged and does not change the result.
    """

    channel_name = "in_app"

    def __init__(self, connection_manager: ConnectionManager | None = None) -> None:
        self._connection_manager = connection_manager
        self._logger = get_logger(__name__, channel=self.channel_name)

    @property
    def connection_manager(self) -> ConnectionManager:
        if self._connection_manager is None:
            self._connection_manager = get_connection_manager()
        return self._connection_manager

    async def send(
        self,
        ctx: DeliveryContext,
        content: NotificationContent,
        recipient: Recipient,
    ) -> DeliveryResult:
        notification = Notification(
            user_id=recipient.id,
            title=content.subject,
            message=content.message,
            type=content.notification_type,
            priority=content.priority,
            reference_id=content.reference_id,
            reference_type=content.reference_type,
            is_read=False,
            created_at=datetime.now(UTC),
        )
        await ctx.add(notification)

        await self._push(notification)
        return DeliveryResult(
            success=True,
            channel=self.channel_name,
            recipient=recipient.id,
            id=notification.id,
        )

    async def _push(self, notification: Notification) -> None:
        payload = {
            "type": "notification",
            "id": notification.id,
            "title": notification.title,
            "message": notification.message,
            "notificationType": notification.type,
            "priority": notification.priority,
            "timestamp": notification.created_at.isoformat(),
        }
        try:
            delivered = await self.connection_manager.send_to_user(notification.user_id, payload)
        except Exception:
            self._logger.exception(
                "Real-time push failed",
                extra={"notification_id": notification.id, "user_id": notification.user_id},
            )
            return

        self._logger.debug(
            "Real-time push complete",
            extra={"notification_id": notification.id, "connections": delivered},
        )
