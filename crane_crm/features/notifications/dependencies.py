"""FastAPI dependencies for the notifications feature.

Example usage:
    @router.get("/notifications")
    async def list_notifications(
        user: CurrentUserDep,
        session: SessionDep,
        service: NotificationServiceDep,
    ) -> NotificationListResponse:
        ...
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from crane_crm.features.notifications.engine import NotificationEngine, get_notification_engine
from crane_crm.features.notifications.service import NotificationService, get_notification_service

NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]
NotificationEngineDep = Annotated[NotificationEngine, Depends(get_notification_engine)]

__all__ = ["NotificationEngineDep", "NotificationServiceDep"]
