"""Notification engine: template/rule lookup, fan-out delivery, scheduled sweep.

``send_notification`` resolves the event's template and rule, expands the
recipient and channel sets, and runs every (recipient, channel) attempt as an
independent coroutine. Attempts never affect one another: a raised exception
becomes a failed result for that attempt only, and every attempt is written to
the ``notification_logs`` audit table.

Scheduled sends are stored and later picked up by
``process_scheduled_notifications``, which is single-flight per process and
claims rows with ``FOR UPDATE SKIP LOCKED`` on PostgreSQL.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
import logging
from typing import TYPE_CHECKING, Any, Literal

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from crane_crm.core.settings import get_notification_settings
from crane_crm.features.notifications.channels import (
    DeliveryContext,
    DeliveryResult,
    NotificationContent,
    NotificationDispatcher,
    Recipient,
    get_notification_dispatcher,
)
from crane_crm.features.notifications.defaults import default_rule, default_template
from crane_crm.features.notifications.models import NotificationLog, ScheduledNotification
from crane_crm.features.notifications.repository import (
    get_notification_preference_repository,
    get_notification_rule_repository,
    get_notification_template_repository,
    get_scheduled_notification_repository,
)
from crane_crm.features.users.repository import get_user_repository
from crane_crm.infra.logging import clear_log_context, get_lazy_logger, get_log_context, set_log_context
from crane_crm.infra.metrics.tracking import track_dispatch, track_scheduled

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from crane_crm.core.settings.notifications import NotificationSettings
    from crane_crm.features.notifications.models import NotificationRule, NotificationTemplate

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)

RecipientInput = str | dict[str, Any] | Recipient

SCHEDULED_DISABLED_ERROR = "Notification type disabled or missing template"


@dataclass
class AttemptResult:
    """Outcome of one (recipient, channel) attempt."""

    user_id: str
    channel: str
    result: DeliveryResult

    @property
    def success(self) -> bool:
        return self.result.success

    def to_dict(self) -> dict[str, Any]:
        return {"userId": self.user_id, "channel": self.channel, **self.result.to_dict()}


@dataclass
class SendResult:
    """Summary of an immediate send. ``success`` means the event was dispatched."""

    results: list[AttemptResult] = field(default_factory=list)
    success: bool = True

    @property
    def delivered(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return len(self.results) - self.delivered

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "results": [r.to_dict() for r in self.results]}


@dataclass
class ScheduledResult:
    """A send stored for later delivery."""

    id: int
    scheduled_at: datetime
    success: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "scheduled": True, "id": self.id, "scheduledAt": self.scheduled_at.isoformat()}


@dataclass
class SweepResult:
    """Counts from one scheduled-notification sweep."""

    processed: int = 0
    sent: int = 0
    failed: int = 0
    skipped: bool = False


class NotificationEngine:
    """Dispatches business events to users over their channels.

    Example:
        engine = get_notification_engine()
        result = await engine.send_notification(
            session,
            type="lead_created",
            data={"customerName": "Acme Infra", "serviceNeeded": "100T crawler"},
        )
        if result is False:
            ...  # no template, or the rule is missing/inactive
    """

    def __init__(
        self,
        settings: NotificationSettings | None = None,
        dispatcher: NotificationDispatcher | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        self.settings = settings or get_notification_settings()
        self.dispatcher = dispatcher or get_notification_dispatcher()
        self._session_factory = session_factory
        self._sweep_lock = asyncio.Lock()

        self.templates = get_notification_template_repository()
        self.rules = get_notification_rule_repository()
        self.preferences = get_notification_preference_repository()
        self.scheduled = get_scheduled_notification_repository()
        self.users = get_user_repository()

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            from crane_crm.infra.database.session import AsyncSessionLocal

            self._session_factory = AsyncSessionLocal
        return self._session_factory

    async def send_notification(
        self,
        session: AsyncSession,
        *,
        type: str,  # noqa: A002
        recipients: Sequence[RecipientInput] | None = None,
        data: dict[str, Any] | None = None,
        channels: Sequence[str] | None = None,
        priority: str | None = None,
        schedule_at: datetime | None = None,
    ) -> SendResult | ScheduledResult | Literal[False]:
        """Send or schedule one event.

        Args:
            session: Database session; committed before returning
            type: Event type (e.g. ``lead_created``)
            recipients: Explicit recipients (user ids or ``{id, email?, phone?}``);
                default is every active user holding one of the rule's roles
            data: Placeholder values for the templates
            channels: Explicit non-empty channel list; default is the rule's
            priority: ``low``, ``medium``, ``high`` or ``urgent``
            schedule_at: Store for the sweep instead of sending now

        Returns:
            ``ScheduledResult`` when scheduled, ``False`` when the template is
            missing or the rule is missing/inactive, otherwise ``SendResult``.
        """
        data = dict(data or {})
        priority = priority or self.settings.default_priority

        if schedule_at is not None:
            return await self._schedule(
                session,
                notification_type=type,
                recipients=recipients,
                data=data,
                channels=channels,
                priority=priority,
                schedule_at=schedule_at,
            )

        template = await self._load_template(session, type)
        if template is None:
            logger.error("No notification template for type", extra={"notification_type": type})
            track_dispatch(type, dispatched=False)
            return False

        rule = await self._load_rule(session, type)
        if rule is None or not rule.is_active:
            logger.info(
                "Notification rule missing or inactive",
                extra={"notification_type": type, "rule_found": rule is not None},
            )
            track_dispatch(type, dispatched=False)
            return False

        if recipients is not None:
            targets = await self._resolve_explicit(session, recipients)
        else:
            targets = await self._resolve_by_roles(session, rule.user_roles)
        selected_channels = list(channels) if channels else list(rule.channels)

        content = NotificationContent(
            notification_type=type,
            template=template,
            data=data,
            priority=priority,
        )
        prefs = await self.preferences.get_for_users(session, [t.id for t in targets])

        pairs = [(target, channel) for target in targets for channel in selected_channels]
        lazy_logger.debug(
            lambda: f"send_notification({type}): {len(targets)} recipients x {selected_channels}"
        )

        ctx = DeliveryContext(session)
        outcomes = await asyncio.gather(
            *(
                self.dispatcher.deliver(ctx, content, target, channel, prefs.get(target.id))
                for target, channel in pairs
            ),
            return_exceptions=True,
        )

        attempts: list[AttemptResult] = []
        for (target, channel), outcome in zip(pairs, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                logger.error(
                    "Notification channel raised",
                    extra={"notification_type": type, "channel": channel, "user_id": target.id},
                    exc_info=outcome,
                )
                outcome = DeliveryResult(success=False, channel=channel, error=str(outcome) or outcome.__class__.__name__)
            attempts.append(AttemptResult(user_id=target.id, channel=channel, result=outcome))

        if not await self._commit_deliveries(session, type, attempts):
            attempts = [_uncommitted(a) for a in attempts]
        await self._write_logs(session, type, attempts)

        track_dispatch(type, dispatched=True)
        result = SendResult(results=attempts)
        logger.info(
            "Notification dispatched",
            extra={
                "notification_type": type,
                "recipients": len(targets),
                "attempts": len(attempts),
                "delivered": result.delivered,
            },
        )
        return result

    async def process_scheduled_notifications(self, *, now: datetime | None = None) -> SweepResult:
        """Deliver due scheduled notifications.

        A call made while another sweep is running in this process returns
        immediately with ``skipped=True``.
        """
        if self._sweep_lock.locked():
            lazy_logger.debug(lambda: "Scheduled sweep already running; skipping")
            return SweepResult(skipped=True)

        async with self._sweep_lock:
            return await self._sweep(now or datetime.now(UTC))

    # Internals

    async def _sweep(self, now: datetime) -> SweepResult:
        result = SweepResult()
        async with self.session_factory() as session:
            rows = await self.scheduled.claim_due(session, now=now, limit=self.settings.sweep_batch_size)
            jobs = [
                (row.id, row.type, row.recipients, dict(row.data or {}), row.channels, row.priority)
                for row in rows
            ]
            await session.commit()

            outer_context = get_log_context()
            try:
                for row_id, notification_type, recipients, data, channels, priority in jobs:
                    set_log_context(scheduled_id=row_id)
                    result.processed += 1
                    error: str | None = None
                    try:
                        outcome = await self.send_notification(
                            session,
                            type=notification_type,
                            recipients=recipients,
                            data=data,
                            channels=channels,
                            priority=priority,
                        )
                        if outcome is False:
                            error = SCHEDULED_DISABLED_ERROR
                    except Exception as e:
                        await session.rollback()
                        logger.exception(
                            "Scheduled notification failed",
                            extra={"notification_type": notification_type},
                        )
                        error = str(e) or type(e).__name__

                    values: dict[str, Any]
                    if error is None:
                        values = {"status": "sent", "sent_at": datetime.now(UTC), "error": None}
                        result.sent += 1
                    else:
                        values = {"status": "failed", "error": error}
                        result.failed += 1
                    await session.execute(
                        update(ScheduledNotification)
                        .where(ScheduledNotification.id == row_id)
                        .values(**values)
                        .execution_options(synchronize_session=False)
                    )
                    await session.commit()
                    track_scheduled(values["status"])
            finally:
                clear_log_context()
                set_log_context(**outer_context)

        if result.processed:
            logger.info(
                "Scheduled notifications processed",
                extra={"processed": result.processed, "sent": result.sent, "failed": result.failed},
            )
        return result

    async def _schedule(
        self,
        session: AsyncSession,
        *,
        notification_type: str,
        recipients: Sequence[RecipientInput] | None,
        data: dict[str, Any],
        channels: Sequence[str] | None,
        priority: str,
        schedule_at: datetime,
    ) -> ScheduledResult:
        if schedule_at.tzinfo is None:
            schedule_at = schedule_at.replace(tzinfo=UTC)
        row = ScheduledNotification(
            type=notification_type,
            recipients=[_recipient_to_dict(r) for r in recipients] if recipients is not None else None,
            data=data,
            channels=list(channels) if channels else None,
            priority=priority,
            scheduled_at=schedule_at,
            status="pending",
            created_at=datetime.now(UTC),
        )
        await self.scheduled.create(session, row)
        await session.commit()
        track_scheduled("pending")

        logger.info(
            "Notification scheduled",
            extra={"scheduled_id": row.id, "notification_type": notification_type, "scheduled_at": schedule_at.isoformat()},
        )
        return ScheduledResult(id=row.id, scheduled_at=schedule_at)

    async def _load_template(self, session: AsyncSession, notification_type: str) -> NotificationTemplate | None:
        template = await self.templates.get_for_type(session, notification_type)
        if template is None and self.settings.use_builtin_defaults:
            template = default_template(notification_type)
        return template

    async def _load_rule(self, session: AsyncSession, notification_type: str) -> NotificationRule | None:
        rule = await self.rules.get_for_event(session, notification_type)
        if rule is None and self.settings.use_builtin_defaults:
            rule = default_rule(notification_type)
        return rule

    async def _resolve_by_roles(self, session: AsyncSession, roles: Iterable[str]) -> list[Recipient]:
        users = await self.users.list_active_by_roles(session, roles)
        return [Recipient(id=u.id, email=u.email, phone=u.phone, name=u.name) for u in users]

    async def _resolve_explicit(
        self,
        session: AsyncSession,
        recipients: Sequence[RecipientInput],
    ) -> list[Recipient]:
        """Normalise explicit recipients, filling missing contact details from users."""
        targets = [_coerce_recipient(r) for r in recipients]
        incomplete = [t.id for t in targets if not (t.email and t.phone and t.name)]
        known = await self.users.get_many(session, incomplete) if incomplete else {}
        for target in targets:
            user = known.get(target.id)
            if user is None:
                continue
            target.email = target.email or user.email
            target.phone = target.phone or user.phone
            target.name = target.name or user.name
        return targets

    async def _commit_deliveries(
        self,
        session: AsyncSession,
        notification_type: str,
        attempts: list[AttemptResult],
    ) -> bool:
        try:
            await session.commit()
        except SQLAlchemyError:
            await session.rollback()
            logger.exception(
                "Failed to commit in-app notifications",
                extra={"notification_type": notification_type, "attempts": len(attempts)},
            )
            return False
        return True

    async def _write_logs(
        self,
        session: AsyncSession,
        notification_type: str,
        attempts: list[AttemptResult],
    ) -> None:
        if not attempts:
            return
        sent_at = datetime.now(UTC)
        session.add_all(
            NotificationLog(
                user_id=a.user_id,
                type=notification_type,
                channel=a.channel,
                recipient=a.result.recipient or a.user_id,
                success=a.result.success,
                message_id=a.result.message_id or (str(a.result.id) if a.result.id is not None else None),
                error=a.result.failure_text,
                sent_at=sent_at,
            )
            for a in attempts
        )
        try:
            await session.commit()
        except SQLAlchemyError:
            await session.rollback()
            logger.exception(
                "Failed to write notification logs",
                extra={"notification_type": notification_type, "attempts": len(attempts)},
            )


def _uncommitted(attempt: AttemptResult) -> AttemptResult:
    """Stored rows were rolled back; their attempts did not deliver."""
    if attempt.result.id is None:
        return attempt
    failed = DeliveryResult(
        success=False,
        channel=attempt.channel,
        recipient=attempt.result.recipient,
        error="Notification was not saved",
    )
    return AttemptResult(user_id=attempt.user_id, channel=attempt.channel, result=failed)


def _coerce_recipient(value: RecipientInput) -> Recipient:
    if isinstance(value, Recipient):
        return Recipient(id=value.id, email=value.email, phone=value.phone, name=value.name)
    if isinstance(value, str):
        return Recipient(id=value)
    return Recipient(
        id=str(value["id"]),
        email=value.get("email"),
        phone=value.get("phone"),
        name=value.get("name"),
    )


def _recipient_to_dict(value: RecipientInput) -> dict[str, Any]:
    recipient = _coerce_recipient(value)
    payload: dict[str, Any] = {"id": recipient.id}
    for key in ("email", "phone", "name"):
        if getattr(recipient, key):
            payload[key] = getattr(recipient, key)
    return payload


_engine: NotificationEngine | None = None


def get_notification_engine() -> NotificationEngine:
    """Get NotificationEngine singleton instance."""
    global _engine
    if _engine is None:
        _engine = NotificationEngine()
    return _engine


async def send_notification(
    session: AsyncSession,
    **kwargs: Any,
) -> SendResult | ScheduledResult | Literal[False]:
    """Shortcut for ``get_notification_engine().send_notification``."""
    return await get_notification_engine().send_notification(session, **kwargs)


async def process_scheduled_notifications() -> SweepResult:
    """Shortcut for ``get_notification_engine().process_scheduled_notifications``."""
    return await get_notification_engine().process_scheduled_notifications()
