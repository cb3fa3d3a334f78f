"""Push channel placeholder.

Mobile push has no provider yet; every attempt is reported as skipped so
rules that list ``push`` still produce a logged outcome.
"""

from __future__ import annotations

from crane_crm.features.notifications.channels.base import (
    DeliveryContext,
    DeliveryResult,
    NotificationContent,
    PreferenceCheckMixin,
    Recipient,
)


class PushChannelDispatcher(PreferenceCheckMixin):
    channel_name = "push"

    async def send(
        self,
        ctx: DeliveryContext,
        content: NotificationContent,
        recipient: Recipient,
    ) -> DeliveryResult:
        return DeliveryResult.skipped(self.channel_name, "Push notifications not implemented", recipient.id)
