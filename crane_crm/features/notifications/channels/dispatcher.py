"""Channel registry routing one attempt to its dispatcher."""

from __future__ import annotations

from typing import TYPE_CHECKING

from crane_crm.features.notifications.channels.base import DeliveryResult
from crane_crm.features.notifications.channels.email import EmailChannelDispatcher
from crane_crm.features.notifications.channels.in_app import InAppChannelDispatcher
from crane_crm.features.notifications.channels.push import PushChannelDispatcher
from crane_crm.features.notifications.channels.sms import SmsChannelDispatcher
from crane_crm.infra.logging import get_lazy_logger, get_logger
from crane_crm.infra.metrics.tracking import track_delivery

if TYPE_CHECKING:
    from crane_crm.features.notifications.channels.base import (
        ChannelDispatcher,
        DeliveryContext,
        NotificationContent,
        Recipient,
    )
    from crane_crm.features.notifications.models import NotificationPreference


class NotificationDispatcher:
    """Routes a (recipient, channel) attempt to the matching dispatcher.

    Handles:
    - Unknown channel names (reported, not raised)
    - User preferences muting a channel or the event type
    - Per-channel delivery metrics

    Exceptions raised by a dispatcher propagate; the engine turns them into
    failed results.
    """

    def __init__(self, channels: dict[str, ChannelDispatcher] | None = None) -> None:
        self._logger = get_logger(__name__)
        self._lazy = get_lazy_logger(__name__)
        self._channels: dict[str, ChannelDispatcher] = channels or {
            "in_app": InAppChannelDispatcher(),
            "email": EmailChannelDispatcher(),
            "sms": SmsChannelDispatcher(),
            "push": PushChannelDispatcher(),
        }

    async def deliver(
        self,
        ctx: DeliveryContext,
        content: NotificationContent,
        recipient: Recipient,
        channel: str,
        preferences: NotificationPreference | None = None,
    ) -> DeliveryResult:
        dispatcher = self._channels.get(channel)
        if dispatcher is None:
            self._logger.warning("No dispatcher for channel", extra={"channel": channel})
            return DeliveryResult.skipped(channel, f"Unknown channel: {channel}")

        if not dispatcher.is_enabled_for_user(preferences, content.notification_type):
            self._lazy.debug(
                lambda: f"Channel {channel} disabled by preference for user {recipient.id}"
            )
            return DeliveryResult.skipped(channel, "Disabled by user preference")

        result = await dispatcher.send(ctx, content, recipient)
        track_delivery(channel, result.success)
        return result


_dispatcher: NotificationDispatcher | None = None


def get_notification_dispatcher() -> NotificationDispatcher:
    """Get NotificationDispatcher singleton instance."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher()
    return _dispatcher
