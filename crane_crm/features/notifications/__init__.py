"""Multi-channel notifications for CRM business events.

Architecture:
    - Models: rules, templates, inbox notifications, delivery log, scheduled sends, preferences
    - Defaults: built-in templates and rules for the standard CRM events
    - Channels: in_app (inbox + WebSocket push), email, sms, push
    - Engine: rule/template lookup, fan-out delivery, scheduled sweep
    - Events: helpers building event data with frontend links

Example:
    ```python
    result = await send_notification(
        session,
        type="lead_created",
        recipients=[{"id": "u1", "email": "a@b.com"}],
        channels=["in_app", "email"],
        data={"customerName": "Acme Infra", "serviceNeeded": "100T crawler"},
    )
    ```
"""

from __future__ import annotations

from crane_crm.features.notifications.defaults import seed_defaults
from crane_crm.features.notifications.engine import (
    NotificationEngine,
    ScheduledResult,
    SendResult,
    SweepResult,
    get_notification_engine,
    process_scheduled_notifications,
    send_notification,
)
from crane_crm.features.notifications.models import (
    Notification,
    NotificationLog,
    NotificationPreference,
    NotificationRule,
    NotificationTemplate,
    ScheduledNotification,
)
from crane_crm.features.notifications.service import NotificationService, get_notification_service

__all__ = [
    "Notification",
    "NotificationEngine",
    "NotificationLog",
    "NotificationPreference",
    "NotificationRule",
    "NotificationService",
    "NotificationTemplate",
    "ScheduledNotification",
    "ScheduledResult",
    "SendResult",
    "SweepResult",
    "get_notification_engine",
    "get_notification_service",
    "process_scheduled_notifications",
    "seed_defaults",
    "send_notification",
]
