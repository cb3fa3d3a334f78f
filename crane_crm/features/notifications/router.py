"""API router for the notifications feature.

User Endpoints:
- GET /notifications - List the caller's notifications
- PATCH /notifications/{notification_id}/read - Mark one read
- POST /notifications/mark-all-read - Mark all read

Preference Endpoints:
- GET /notifications/preferences - Caller's channel preferences
- PUT /notifications/preferences - Update them

Dispatch & Analytics:
- POST /notifications/send - Send or schedule an event
- GET /notifications/analytics - Delivery statistics
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Query

from crane_crm.core.dependencies import CurrentUserDep, SessionDep
from crane_crm.features.notifications.dependencies import (
    NotificationEngineDep,
    NotificationServiceDep,
)
from crane_crm.features.notifications.schemas import (
    AnalyticsResponse,
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
    PreferenceResponse,
    PreferenceUpdate,
    SendNotificationRequest,
)
from crane_crm.infra.logging import get_lazy_logger

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get(
    "/",
    response_model=NotificationListResponse,
    summary="List user's notifications",
    description="""
List notifications for the authenticated user, newest first.

**Query Parameters:**
- `unread_only`: Only return unread notifications (default: false)
- `type`: Filter by notification type (e.g., 'lead_created')
- `limit`: Maximum results (1-100, default: 50)
- `offset`: Pagination offset (default: 0)
""",
)
async def list_notifications(
    user: CurrentUserDep,
    session: SessionDep,
    service: NotificationServiceDep,
    unread_only: Annotated[bool, Query(description="Only return unread notifications")] = False,
    notification_type: Annotated[
        str | None,
        Query(alias="type", description="Filter by notification type"),
    ] = None,
    limit: Annotated[int, Query(ge=1, le=100, description="Maximum results")] = 50,
    offset: Annotated[int, Query(ge=0, description="Pagination offset")] = 0,
) -> NotificationListResponse:
    items, total, unread = await service.list_user_notifications(
        session,
        user.id,
        notification_type=notification_type,
        unread_only=unread_only,
        limit=limit,
        offset=offset,
    )
    return NotificationListResponse(
        items=[NotificationResponse.model_validate(n) for n in items],
        total=total,
        unread_count=unread,
    )


@router.post(
    "/mark-all-read",
    response_model=MarkAllReadResponse,
    summary="Mark all notifications read",
)
async def mark_all_read(
    user: CurrentUserDep,
    session: SessionDep,
    service: NotificationServiceDep,
) -> MarkAllReadResponse:
    updated = await service.mark_all_read(session, user.id)
    return MarkAllReadResponse(updated=updated)


@router.get(
    "/preferences",
    response_model=PreferenceResponse,
    summary="Get notification preferences",
)
async def get_preferences(
    user: CurrentUserDep,
    session: SessionDep,
    service: NotificationServiceDep,
) -> PreferenceResponse:
    return PreferenceResponse(**await service.get_preferences(session, user.id))


@router.put(
    "/preferences",
    response_model=PreferenceResponse,
    summary="Update notification preferences",
    description="Channel switches (`in_app`, `email`, `sms`, `push`) and muted event types.",
)
async def update_preferences(
    payload: PreferenceUpdate,
    user: CurrentUserDep,
    session: SessionDep,
    service: NotificationServiceDep,
) -> PreferenceResponse:
    return PreferenceResponse(**await service.update_preferences(session, user.id, payload))


@router.post(
    "/send",
    summary="Send a notification",
    description="""
Send (or, with `scheduleAt`, schedule) one event.

**Response shapes:**
- `{success: true, results: [{userId, channel, success, id?, messageId?, reason?, error?}]}`
- `{success: true, scheduled: true, id, scheduledAt}`
- `{success: false, reason}` when the template is missing or the rule is missing/inactive
""",
)
async def send_notification(
    payload: SendNotificationRequest,
    user: CurrentUserDep,
    session: SessionDep,
    engine: NotificationEngineDep,
) -> dict[str, Any]:
    result = await engine.send_notification(
        session,
        type=payload.type,
        recipients=[r.model_dump(exclude_none=True) for r in payload.recipients]
        if payload.recipients is not None
        else None,
        data=payload.data,
        channels=payload.channels,
        priority=payload.priority,
        schedule_at=payload.schedule_at,
    )
    if result is False:
        return {"success": False, "reason": "Notification type disabled or missing template"}

    lazy_logger.debug(lambda: f"send_notification by {user.id}: {payload.type}")
    return result.to_dict()


@router.get(
    "/analytics",
    response_model=AnalyticsResponse,
    summary="Delivery analytics",
    description="Per-channel sent/failed counts and per-type counts. Admins see all users.",
)
async def get_analytics(
    user: CurrentUserDep,
    session: SessionDep,
    service: NotificationServiceDep,
    days: Annotated[int, Query(ge=1, le=365, description="Look-back window in days")] = 30,
) -> AnalyticsResponse:
    stats = await service.get_analytics(session, user.id, days=days, scope_to_user=not user.is_admin)
    return AnalyticsResponse(**stats)


@router.patch(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark a notification read",
    responses={404: {"description": "Notification not found"}},
)
async def mark_read(
    notification_id: int,
    user: CurrentUserDep,
    session: SessionDep,
    service: NotificationServiceDep,
) -> NotificationResponse:
    notification = await service.mark_read(session, notification_id, user.id)
    return NotificationResponse.model_validate(notification)
