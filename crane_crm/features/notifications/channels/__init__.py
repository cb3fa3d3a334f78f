"""Multi-channel notification delivery.

Provides channel-specific dispatchers for:
- In-app: inbox row plus live WebSocket push
- Email: via the SMTP client
- SMS: via the Twilio client
- Push: reported as not implemented

Each dispatcher implements the ChannelDispatcher protocol.
"""

from __future__ import annotations

from crane_crm.features.notifications.channels.base import (
    ChannelDispatcher,
    DeliveryContext,
    DeliveryResult,
    NotificationContent,
    Recipient,
)
from crane_crm.features.notifications.channels.dispatcher import (
    NotificationDispatcher,
    get_notification_dispatcher,
)

__all__ = [
    "ChannelDispatcher",
    "DeliveryContext",
    "DeliveryResult",
    "NotificationContent",
    "NotificationDispatcher",
    "Recipient",
    "get_notification_dispatcher",
]
