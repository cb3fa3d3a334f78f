"""Inbox, preference and analytics operations for the notifications API."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from crane_crm.core.exceptions import NotFoundException
from crane_crm.core.services.base import BaseService
from crane_crm.features.notifications.repository import (
    NotificationLogRepository,
    NotificationPreferenceRepository,
    NotificationRepository,
    get_notification_log_repository,
    get_notification_preference_repository,
    get_notification_repository,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from crane_crm.features.notifications.models import Notification, NotificationPreference
    from crane_crm.features.notifications.schemas import PreferenceUpdate

DEFAULT_PREFERENCES: dict[str, Any] = {
    "in_app": True,
    "email": True,
    "sms": True,
    "push": True,
    "muted_types": [],
}


class NotificationService(BaseService):
    """User-facing notification operations. Everything is scoped to ``user_id``."""

    def __init__(
        self,
        notifications: NotificationRepository | None = None,
        preferences: NotificationPreferenceRepository | None = None,
        logs: NotificationLogRepository | None = None,
    ) -> None:
        super().__init__()
        self.notifications = notifications or get_notification_repository()
        self.preferences = preferences or get_notification_preference_repository()
        self.logs = logs or get_notification_log_repository()

    async def list_user_notifications(
        self,
        session: AsyncSession,
        user_id: str,
        *,
        notification_type: str | None = None,
        unread_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[Sequence[Notification], int, int]:
        """Returns (notifications, total, unread_count)."""
        items, total = await self.notifications.list_for_user(
            session,
            user_id,
            notification_type=notification_type,
            unread_only=unread_only,
            limit=limit,
            offset=offset,
        )
        unread = await self.notifications.get_unread_count(session, user_id)
        return items, total, unread

    async def mark_read(self, session: AsyncSession, notification_id: int, user_id: str) -> Notification:
        """Mark one notification read.

        Raises:
            NotFoundException: If missing or owned by another user.
        """
        notification = await self.notifications.mark_as_read(session, notification_id, user_id)
        if notification is None:
            raise NotFoundException(
                detail=f"Notification {notification_id} not found",
                type="notification-not-found",
                extra={"notification_id": notification_id},
            )
        await session.commit()
        return notification

    async def mark_all_read(self, session: AsyncSession, user_id: str) -> int:
        updated = await self.notifications.mark_all_read(session, user_id)
        await session.commit()
        self.logger.info("Notifications marked read", extra={"user_id": user_id, "updated": updated})
        return updated

    async def get_preferences(self, session: AsyncSession, user_id: str) -> dict[str, Any]:
        """Stored preferences, or the all-enabled defaults when none are stored."""
        pref = await self.preferences.get_for_user(session, user_id)
        return _preference_dict(user_id, pref)

    async def update_preferences(
        self,
        session: AsyncSession,
        user_id: str,
        payload: PreferenceUpdate,
    ) -> dict[str, Any]:
        fields = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
        pref = await self.preferences.upsert(session, user_id, **fields)
        await session.commit()
        self.logger.info(
            "Notification preferences updated",
            extra={"user_id": user_id, "fields": sorted(fields)},
        )
        return _preference_dict(user_id, pref)

    async def get_analytics(
        self,
        session: AsyncSession,
        user_id: str,
        *,
        days: int = 30,
        scope_to_user: bool = True,
    ) -> dict[str, Any]:
        """Delivery statistics for the last ``days`` days.

        Admins see every user's deliveries (``scope_to_user=False``).
        """
        since = datetime.now(UTC) - timedelta(days=days)
        log_user = user_id if scope_to_user else None

        by_channel = await self.logs.get_stats_by_channel(session, since=since, user_id=log_user)
        by_type = await self.logs.get_stats_by_type(session, since=since, user_id=log_user)
        unread = await self.notifications.get_unread_count(session, user_id)

        sent = sum(c["sent"] for c in by_channel.values())
        failed = sum(c["failed"] for c in by_channel.values())
        self._lazy.debug(lambda: f"analytics({user_id=}, {days=}): sent={sent}, failed={failed}")
        return {
            "days": days,
            "since": since,
            "by_channel": by_channel,
            "by_type": by_type,
            "total_sent": sent,
            "total_failed": failed,
            "success_rate": round(sent / (sent + failed), 4) if sent + failed else None,
            "unread_count": unread,
        }


def _preference_dict(user_id: str, pref: NotificationPreference | None) -> dict[str, Any]:
    if pref is None:
        return {"user_id": user_id, **DEFAULT_PREFERENCES, "muted_types": []}
    return {
        "user_id": user_id,
        "in_app": pref.in_app,
        "email": pref.email,
        "sms": pref.sms,
        "push": pref.push,
        "muted_types": list(pref.muted_types or []),
    }


_service: NotificationService | None = None


def get_notification_service() -> NotificationService:
    """Get NotificationService singleton instance."""
    global _service
    if _service is None:
        _service = NotificationService()
    return _service
