"""Base protocol and types for channel dispatchers."""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from crane_crm.features.templates.placeholders import NOTIFICATION_DEFAULTS, resolve

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from crane_crm.features.notifications.models import NotificationPreference, NotificationTemplate

_WHITESPACE = re.compile(r"\s+")


@dataclass
class DeliveryContext:
    """Database access shared by the concurrent attempts of one send.

    An AsyncSession does not allow concurrent operations, so every write
    goes through ``add`` which holds ``lock`` while flushing. Each write runs
    in its own SAVEPOINT: a failed insert rolls back that attempt only and
    leaves the rows of the other attempts in the transaction.
    """

    session: AsyncSession
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    async def add(self, instance: Any) -> None:
        async with self.lock, self.session.begin_nested():
            self.session.add(instance)
            await self.session.flush()


@dataclass
class Recipient:
    """Resolved addressee of one notification.

    Attributes:
        id: User id (in-app inbox owner and WebSocket key)
        email: Email address, if known
        phone: Phone number in E.164 form, if known
        name: Display name
    """

    id: str
    email: str | None = None
    phone: str | None = None
    name: str | None = None


@dataclass
class NotificationContent:
    """Template plus data for one event; renders per-channel text.

    Unresolved placeholders fall back to ``NOTIFICATION_DEFAULTS`` and are
    otherwise kept literally.
    """

    notification_type: str
    template: NotificationTemplate
    data: dict[str, Any] = field(default_factory=dict)
    priority: str = "medium"

    def _render(self, text: str | None) -> str:
        return resolve(text, self.data, defaults=NOTIFICATION_DEFAULTS)

    @property
    def subject(self) -> str:
        return self._render(self.template.subject_template)

    @property
    def message(self) -> str:
        return self._render(self.template.message_template)

    @property
    def email_html(self) -> str | None:
        if not self.template.email_template:
            return None
        return self._render(self.template.email_template)

    @property
    def sms_text(self) -> str:
        """SMS body on a single line, falling back to the message template."""
        text = self._render(self.template.sms_template or self.template.message_template)
        return _WHITESPACE.sub(" ", text).strip()

    @property
    def reference_id(self) -> str | None:
        value = self.data.get("referenceId")
        return None if value is None else str(value)

    @property
    def reference_type(self) -> str | None:
        return self.data.get("referenceType")


@dataclass
class DeliveryResult:
    """Result of a channel delivery attempt.

    Attributes:
        success: Whether delivery succeeded
        channel: Channel name
        recipient: Address used (user id, email or phone number)
        id: In-app notification id
        message_id: Provider message id (SMTP Message-ID, Twilio SID)
        reason: Why the attempt was skipped (not configured, no address, ...)
        error: Error description when delivery raised or was rejected
    """

    success: bool
    channel: str
    recipient: str | None = None
    id: int | None = None
    message_id: str | None = None
    reason: str | None = None
    error: str | None = None

    @classmethod
    def skipped(cls, channel: str, reason: str, recipient: str | None = None) -> DeliveryResult:
        return cls(success=False, channel=channel, recipient=recipient, reason=reason)

    @property
    def failure_text(self) -> str | None:
        return self.error or self.reason

    def to_dict(self) -> dict[str, Any]:
        """Wire shape: ``{success, id?, messageId?, reason?, error?}``."""
        payload: dict[str, Any] = {"success": self.success}
        if self.id is not None:
            payload["id"] = self.id
        if self.message_id is not None:
            payload["messageId"] = self.message_id
        if self.reason is not None:
            payload["reason"] = self.reason
        if self.error is not None:
            payload["error"] = self.error
        return payload


class ChannelDispatcher(Protocol):
    """Protocol for channel-specific notification dispatchers.

    Each channel (in_app, email, sms, push) implements this protocol to
    provide a consistent delivery interface. ``send`` never raises for
    expected failures; it returns a DeliveryResult instead.
    """

    async def send(
        self,
        ctx: DeliveryContext,
        content: NotificationContent,
        recipient: Recipient,
    ) -> DeliveryResult:
        """Deliver ``content`` to ``recipient`` via this channel."""
        ...

    def is_enabled_for_user(
        self,
        preferences: NotificationPreference | None,
        notification_type: str,
    ) -> bool:
        """Check the user's stored preferences (None = everything enabled)."""
        ...

    def get_channel_name(self) -> str:
        """Channel identifier (in_app, email, sms, push)."""
        ...


class PreferenceCheckMixin:
    """``is_enabled_for_user`` driven by the preference row's channel flag."""

    channel_name: str

    def is_enabled_for_user(
        self,
        preferences: NotificationPreference | None,
        notification_type: str,
    ) -> bool:
        if preferences is None:
            return True
        return preferences.allows(self.channel_name, notification_type)

    def get_channel_name(self) -> str:
        return self.channel_name
