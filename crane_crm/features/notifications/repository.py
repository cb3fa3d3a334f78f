"""Repositories for the notifications feature."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import and_, func, select, update

from crane_crm.core.database.repository import BaseRepository
from crane_crm.features.notifications.models import (
    Notification,
    NotificationLog,
    NotificationPreference,
    NotificationRule,
    NotificationTemplate,
    ScheduledNotification,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession


class NotificationRuleRepository(BaseRepository[NotificationRule]):
    def __init__(self) -> None:
        super().__init__(NotificationRule)

    async def get_for_event(self, session: AsyncSession, event_type: str) -> NotificationRule | None:
        """Stored rule for ``event_type``, active or not."""
        return await self.get_by(session, NotificationRule.event_type, event_type)


class NotificationTemplateRepository(BaseRepository[NotificationTemplate]):
    def __init__(self) -> None:
        super().__init__(NotificationTemplate)

    async def get_for_type(
        self,
        session: AsyncSession,
        template_type: str,
    ) -> NotificationTemplate | None:
        """Active template for ``template_type``."""
        stmt = select(NotificationTemplate).where(
            NotificationTemplate.template_type == template_type,
            NotificationTemplate.is_active.is_(True),
        )
        result = await session.execute(stmt)
        template = result.scalars().first()

        self._lazy.debug(
            lambda: f"db.get_for_type({template_type=}) -> {'found' if template else 'not found'}"
        )
        return template


class NotificationRepository(BaseRepository[Notification]):
    """Inbox queries. Every query is scoped to one user."""

    def __init__(self) -> None:
        super().__init__(Notification)

    async def list_for_user(
        self,
        session: AsyncSession,
        user_id: str,
        *,
        notification_type: str | None = None,
        unread_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[Sequence[Notification], int]:
        """List a user's notifications, newest first.

        Returns:
            Tuple of (notifications, total_count)
        """
        stmt = select(Notification).where(Notification.user_id == user_id)
        if notification_type:
            stmt = stmt.where(Notification.type == notification_type)
        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await session.execute(count_stmt)).scalar() or 0

        stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc())
        result = await session.execute(stmt.limit(limit).offset(offset))
        items = result.scalars().all()

        self._lazy.debug(lambda: f"db.list_for_user({user_id=}) -> {len(items)}/{total} notifications")
        return items, total

    async def get_unread_count(self, session: AsyncSession, user_id: str) -> int:
        stmt = select(func.count()).where(
            and_(Notification.user_id == user_id, Notification.is_read.is_(False)),
        )
        count = (await session.execute(stmt)).scalar() or 0

        self._lazy.debug(lambda: f"db.get_unread_count({user_id=}) -> {count}")
        return count

    async def mark_as_read(
        self,
        session: AsyncSession,
        notification_id: int,
        user_id: str,
    ) -> Notification | None:
        """Mark one of the user's notifications read.

        Returns:
            The notification, or None when it is missing or owned by someone else.
        """
        notification = await self.get(session, notification_id)
        if notification is None or notification.user_id != user_id:
            return None
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(UTC)
        return notification

    async def mark_all_read(self, session: AsyncSession, user_id: str) -> int:
        result = await session.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True, read_at=datetime.now(UTC))
            .execution_options(synchronize_session="fetch")
        )
        updated = result.rowcount or 0
        self._lazy.debug(lambda: f"db.mark_all_read({user_id=}) -> {updated}")
        return updated

    async def count_by_type(
        self,
        session: AsyncSession,
        user_id: str,
        since: datetime,
    ) -> dict[str, int]:
        stmt = (
            select(Notification.type, func.count(Notification.id).label("count"))
            .where(Notification.user_id == user_id, Notification.created_at >= since)
            .group_by(Notification.type)
        )
        result = await session.execute(stmt)
        return {row.type: row.count for row in result}


class NotificationLogRepository(BaseRepository[NotificationLog]):
    def __init__(self) -> None:
        super().__init__(NotificationLog)

    async def get_stats_by_channel(
        self,
        session: AsyncSession,
        *,
        since: datetime,
        user_id: str | None = None,
    ) -> dict[str, dict[str, int]]:
        """Sent/failed counts per channel since ``since``.

        Returns:
            ``{channel: {"sent": n, "failed": m}}``
        """
        stmt = select(
            NotificationLog.channel,
            NotificationLog.success,
            func.count(NotificationLog.id).label("count"),
        ).where(NotificationLog.sent_at >= since)
        if user_id is not None:
            stmt = stmt.where(NotificationLog.user_id == user_id)
        stmt = stmt.group_by(NotificationLog.channel, NotificationLog.success)

        stats: dict[str, dict[str, int]] = {}
        for row in await session.execute(stmt):
            bucket = stats.setdefault(row.channel, {"sent": 0, "failed": 0})
            bucket["sent" if row.success else "failed"] += row.count

        self._lazy.debug(lambda: f"db.get_stats_by_channel({since=}) -> {stats}")
        return stats

    async def get_stats_by_type(
        self,
        session: AsyncSession,
        *,
        since: datetime,
        user_id: str | None = None,
    ) -> dict[str, int]:
        stmt = select(NotificationLog.type, func.count(NotificationLog.id).label("count")).where(
            NotificationLog.sent_at >= since
        )
        if user_id is not None:
            stmt = stmt.where(NotificationLog.user_id == user_id)
        stmt = stmt.group_by(NotificationLog.type)
        result = await session.execute(stmt)
        return {row.type: row.count for row in result}


class ScheduledNotificationRepository(BaseRepository[ScheduledNotification]):
    """Scheduled send requests and the sweep's row claiming."""

    def __init__(self) -> None:
        super().__init__(ScheduledNotification)

    async def claim_due(
        self,
        session: AsyncSession,
        *,
        now: datetime | None = None,
        limit: int = 50,
    ) -> Sequence[ScheduledNotification]:
        """Claim up to ``limit`` due pending rows, oldest first.

        Claimed rows are marked ``processing``. On PostgreSQL the select uses
        ``FOR UPDATE SKIP LOCKED`` so concurrent sweepers never claim the same
        row. The caller commits to release the locks.
        """
        now = now or datetime.now(UTC)
        stmt = (
            select(ScheduledNotification)
            .where(
                ScheduledNotification.status == "pending",
                ScheduledNotification.scheduled_at <= now,
            )
            .order_by(ScheduledNotification.scheduled_at.asc(), ScheduledNotification.id.asc())
            .limit(limit)
        )
        if session.get_bind().dialect.name == "postgresql":
            stmt = stmt.with_for_update(skip_locked=True)

        result = await session.execute(stmt)
        items = result.scalars().all()
        for item in items:
            item.status = "processing"
        await session.flush()

        self._lazy.debug(lambda: f"db.claim_due(limit={limit}) -> {len(items)} rows")
        return items


class NotificationPreferenceRepository(BaseRepository[NotificationPreference]):
    def __init__(self) -> None:
        super().__init__(NotificationPreference)

    async def get_for_user(self, session: AsyncSession, user_id: str) -> NotificationPreference | None:
        return await self.get_by(session, NotificationPreference.user_id, user_id)

    async def get_for_users(
        self,
        session: AsyncSession,
        user_ids: Sequence[str],
    ) -> dict[str, NotificationPreference]:
        if not user_ids:
            return {}
        stmt = select(NotificationPreference).where(NotificationPreference.user_id.in_(list(user_ids)))
        result = await session.execute(stmt)
        return {pref.user_id: pref for pref in result.scalars().all()}

    async def upsert(
        self,
        session: AsyncSession,
        user_id: str,
        **fields: Any,
    ) -> NotificationPreference:
        """Create or update the user's preference row."""
        existing = await self.get_for_user(session, user_id)
        if existing:
            for key, value in fields.items():
                setattr(existing, key, value)
            await session.flush()
            self._lazy.debug(lambda: f"db.upsert({user_id=}) -> updated")
            return existing

        pref = NotificationPreference(user_id=user_id, **fields)
        created = await self.create(session, pref)
        self._lazy.debug(lambda: f"db.upsert({user_id=}) -> created")
        return created


_rule_repository: NotificationRuleRepository | None = None
_template_repository: NotificationTemplateRepository | None = None
_notification_repository: NotificationRepository | None = None
_log_repository: NotificationLogRepository | None = None
_scheduled_repository: ScheduledNotificationRepository | None = None
_preference_repository: NotificationPreferenceRepository | None = None


def get_notification_rule_repository() -> NotificationRuleRepository:
    """Get NotificationRuleRepository singleton instance."""
    global _rule_repository
    if _rule_repository is None:
        _rule_repository = NotificationRuleRepository()
    return _rule_repository


def get_notification_template_repository() -> NotificationTemplateRepository:
    """Get NotificationTemplateRepository singleton instance."""
    global _template_repository
    if _template_repository is None:
        _template_repository = NotificationTemplateRepository()
    return _template_repository


def get_notification_repository() -> NotificationRepository:
    """Get NotificationRepository singleton instance."""
    global _notification_repository
    if _notification_repository is None:
        _notification_repository = NotificationRepository()
    return _notification_repository


def get_notification_log_repository() -> NotificationLogRepository:
    """Get NotificationLogRepository singleton instance."""
    global _log_repository
    if _log_repository is None:
        _log_repository = NotificationLogRepository()
    return _log_repository


def get_scheduled_notification_repository() -> ScheduledNotificationRepository:
    """Get ScheduledNotificationRepository singleton instance."""
    global _scheduled_repository
    if _scheduled_repository is None:
        _scheduled_repository = ScheduledNotificationRepository()
    return _scheduled_repository


def get_notification_preference_repository() -> NotificationPreferenceRepository:
    """Get NotificationPreferenceRepository singleton instance."""
    global _preference_repository
    if _preference_repository is None:
        _preference_repository = NotificationPreferenceRepository()
    return _preference_repository
