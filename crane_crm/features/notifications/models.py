"""SQLAlchemy models for the notifications feature."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    Boolean,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    TypeDecorator,
    text,
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from crane_crm.core.database import Base, IntegerPKMixin, JSONType, TimestampedBase

if TYPE_CHECKING:
    from sqlalchemy.engine import Dialect
    from sqlalchemy.sql.type_api import TypeEngine


class StringArray(TypeDecorator):
    """Cross-database type for string arrays.

    Uses native ARRAY in PostgreSQL, JSON text in SQLite.
    """

    impl = Text
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect) -> TypeEngine[Any]:
        if dialect.name == "postgresql":
            return dialect.type_descriptor(ARRAY(String(100)))
        return dialect.type_descriptor(Text())

    def process_bind_param(self, value: list[str] | None, dialect: Dialect) -> Any:
        if value is None:
            return value
        if dialect.name == "postgresql":
            return list(value)
        return json.dumps(list(value))

    def process_result_value(self, value: Any, dialect: Dialect) -> list[str]:
        if value is None:
            return []
        if dialect.name == "postgresql":
            return list(value)
        return json.loads(value) if value else []


def _utcnow() -> datetime:
    return datetime.now(UTC)


class NotificationRule(TimestampedBase):
    """Which roles receive an event, and over which channels.

    One rule per event type. An inactive rule disables the event entirely.
    """

    __tablename__ = "notification_rules"

    event_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        comment="Event type (e.g. 'lead_created')",
    )
    user_roles: Mapped[list[str]] = mapped_column(
        StringArray(),
        nullable=False,
        default=list,
        comment="Roles whose active users receive the event",
    )
    channels: Mapped[list[str]] = mapped_column(
        StringArray(),
        nullable=False,
        default=list,
        comment="Delivery channels: in_app, email, sms, push",
    )
    conditions: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )


class NotificationTemplate(TimestampedBase):
    """Per-event message templates with ``{{ path }}`` placeholders.

    ``subject_template`` becomes the in-app title and email subject,
    ``message_template`` the in-app message and plain-text email body.
    """

    __tablename__ = "notification_templates"

    template_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        comment="Event type this template renders",
    )
    subject_template: Mapped[str] = mapped_column(Text(), nullable=False)
    message_template: Mapped[str] = mapped_column(Text(), nullable=False)
    email_template: Mapped[str | None] = mapped_column(Text(), nullable=True)
    sms_template: Mapped[str | None] = mapped_column(Text(), nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )


class Notification(Base, IntegerPKMixin):
    """In-app notification shown in a user's inbox."""

    __tablename__ = "notifications"

    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    message: Mapped[str] = mapped_column(Text(), nullable=False)
    type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    is_read: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")
    reference_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reference_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        nullable=False,
    )
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (Index("ix_notifications_user_unread", "user_id", "is_read"),)


class NotificationLog(Base, IntegerPKMixin):
    """One row per delivery attempt, successful or not."""

    __tablename__ = "notification_logs"

    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    channel: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    recipient: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Address used: user id, email or phone number",
    )
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    message_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    error: Mapped[str | None] = mapped_column(Text(), nullable=True)
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        nullable=False,
        index=True,
    )


class ScheduledNotification(Base, IntegerPKMixin):
    """A send request held until ``scheduled_at``.

    Status moves ``pending`` -> ``processing`` -> ``sent`` | ``failed``.
    """

    __tablename__ = "scheduled_notifications"

    type: Mapped[str] = mapped_column(String(100), nullable=False)
    recipients: Mapped[list[dict[str, Any]] | None] = mapped_column(JSONType, nullable=True)
    data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    channels: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    error: Mapped[str | None] = mapped_column(Text(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (Index("ix_scheduled_notifications_due", "status", "scheduled_at"),)


class NotificationPreference(TimestampedBase):
    """Per-user channel switches and muted event types."""

    __tablename__ = "notification_preferences"

    user_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    in_app: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    email: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sms: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    push: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    muted_types: Mapped[list[str]] = mapped_column(
        StringArray(),
        nullable=False,
        default=list,
        comment="Event types the user never receives",
    )

    def allows(self, channel: str, notification_type: str) -> bool:
        """Whether ``channel`` delivery of ``notification_type`` is allowed."""
        if notification_type in (self.muted_types or []):
            return False
        return bool(getattr(self, channel, True))
