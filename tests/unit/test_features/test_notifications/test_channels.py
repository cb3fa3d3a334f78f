"""Tests for notification content rendering and the channel dispatchers."""

from __future__ import annotations

from typing import Any

import pytest
from sqlalchemy import select

from crane_crm.features.notifications.channels import (
    DeliveryContext,
    DeliveryResult,
    NotificationContent,
    NotificationDispatcher,
    Recipient,
)
from crane_crm.features.notifications.channels.email import EmailChannelDispatcher
from crane_crm.features.notifications.channels.in_app import InAppChannelDispatcher
from crane_crm.features.notifications.channels.push import PushChannelDispatcher
from crane_crm.features.notifications.channels.sms import SmsChannelDispatcher
from crane_crm.features.notifications.defaults import default_template
from crane_crm.features.notifications.models import Notification, NotificationPreference
from crane_crm.infra.email import EmailPriority, EmailResult
from crane_crm.infra.sms import SmsResult


class FakeEmailClient:
    def __init__(self, *, configured: bool = True, result: EmailResult | None = None) -> None:
        self.is_configured = configured
        self.result = result or EmailResult(success=True, message_id="<m-1@aspcranes.com>")
        self.sent: list[Any] = []

    async def send(self, message):
        self.sent.append(message)
        return self.result


class FakeSmsClient:
    def __init__(self, *, configured: bool = True, result: SmsResult | None = None) -> None:
        self.is_configured = configured
        self.result = result or SmsResult(success=True, message_id="SM123", status_code=201)
        self.sent: list[tuple[str, str]] = []

    async def send(self, to: str, body: str) -> SmsResult:
        self.sent.append((to, body))
        return self.result


class FakeConnectionManager:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.messages: list[tuple[str, dict[str, Any]]] = []

    async def send_to_user(self, user_id: str, message: dict[str, Any]) -> int:
        if self.fail:
            raise RuntimeError("socket closed")
        self.messages.append((user_id, message))
        return 1


@pytest.fixture
def content() -> NotificationContent:
    return NotificationContent(
        notification_type="lead_created",
        template=default_template("lead_created"),
        data={
            "customerName": "Acme Infra",
            "serviceNeeded": "100T crawler",
            "referenceId": 42,
            "referenceType": "lead",
        },
        priority="high",
    )


@pytest.fixture
def recipient() -> Recipient:
    return Recipient(id="u1", email="a@b.com", phone="+919800000001", name="Asha")


class TestNotificationContent:
    def test_renders_subject_and_message(self, content):
        assert content.subject == "New Lead: Acme Infra"
        assert content.message == "New lead received from Acme Infra for 100T crawler"
        assert content.reference_id == "42"
        assert content.reference_type == "lead"

    def test_unresolved_placeholders_kept_or_defaulted(self):
        content = NotificationContent(
            notification_type="lead_created",
            template=default_template("lead_created"),
            data={},
        )
        assert content.subject == "New Lead: Customer"
        assert "{{serviceNeeded}}" in content.message

    def test_sms_text_is_single_line(self):
        template = default_template("general")
        template.message_template = "Line one\n\n   line   two "
        content = NotificationContent(notification_type="general", template=template)
        assert content.sms_text == "Line one line two"
        assert content.email_html is None


class TestDeliveryResult:
    def test_to_dict_omits_empty_fields(self):
        assert DeliveryResult(success=True, channel="in_app", id=3).to_dict() == {"success": True, "id": 3}
        skipped = DeliveryResult.skipped("email", "No email address")
        assert skipped.to_dict() == {"success": False, "reason": "No email address"}
        assert skipped.failure_text == "No email address"


class TestEmailChannel:
    async def test_sends_subject_text_and_html(self, db_session, content, recipient):
        client = FakeEmailClient()
        result = await EmailChannelDispatcher(client).send(DeliveryContext(db_session), content, recipient)

        assert result.success is True
        assert result.message_id == "<m-1@aspcranes.com>"
        assert result.recipient == "a@b.com"
        message = client.sent[0]
        assert message.to == ["a@b.com"]
        assert message.subject == "New Lead: Acme Infra"
        assert "<h2>New Lead Received</h2>" in message.body_html
        assert message.priority == EmailPriority.HIGH

    async def test_not_configured(self, db_session, content, recipient):
        client = FakeEmailClient(configured=False)
        result = await EmailChannelDispatcher(client).send(DeliveryContext(db_session), content, recipient)
        assert result.success is False
        assert result.reason == "Email service not configured"
        assert client.sent == []

    async def test_missing_address(self, db_session, content):
        result = await EmailChannelDispatcher(FakeEmailClient()).send(
            DeliveryContext(db_session), content, Recipient(id="u9")
        )
        assert result.reason == "No email address"

    async def test_provider_failure(self, db_session, content, recipient):
        client = FakeEmailClient(result=EmailResult.failure_result("Connection refused", "SMTP_CONNECT_ERROR"))
        result = await EmailChannelDispatcher(client).send(DeliveryContext(db_session), content, recipient)
        assert result.success is False
        assert result.error == "Connection refused"


class TestSmsChannel:
    async def test_sends_sms_text(self, db_session, content, recipient):
        client = FakeSmsClient()
        result = await SmsChannelDispatcher(client).send(DeliveryContext(db_session), content, recipient)

        assert result.success is True
        assert result.message_id == "SM123"
        assert client.sent == [
            ("+919800000001", "New lead from Acme Infra for 100T crawler. Check CRM for details.")
        ]

    async def test_not_configured_and_missing_phone(self, db_session, content, recipient):
        ctx = DeliveryContext(db_session)
        unconfigured = await SmsChannelDispatcher(FakeSmsClient(configured=False)).send(ctx, content, recipient)
        assert unconfigured.reason == "SMS service not configured"

        no_phone = await SmsChannelDispatcher(FakeSmsClient()).send(ctx, content, Recipient(id="u9"))
        assert no_phone.reason == "No phone number"

    async def test_carrier_error(self, db_session, content, recipient):
        client = FakeSmsClient(result=SmsResult(success=False, status_code=400, error="Invalid 'To' number"))
        result = await SmsChannelDispatcher(client).send(DeliveryContext(db_session), content, recipient)
        assert result.success is False
        assert result.error == "Invalid 'To' number"


class TestInAppChannel:
    async def test_stores_and_pushes(self, db_session, content, recipient):
        manager = FakeConnectionManager()
        result = await InAppChannelDispatcher(manager).send(DeliveryContext(db_session), content, recipient)

        assert result.success is True
        assert result.id is not None
        row = (await db_session.execute(select(Notification))).scalar_one()
        assert row.user_id == "u1"
        assert row.title == "New Lead: Acme Infra"
        assert row.priority == "high"
        assert row.reference_id == "42"
        assert row.is_read is False

        user_id, payload = manager.messages[0]
        assert user_id == "u1"
        assert payload["type"] == "notification"
        assert payload["id"] == row.id
        assert payload["notificationType"] == "lead_created"

    async def test_push_failure_does_not_fail_delivery(self, db_session, content, recipient):
        manager = FakeConnectionManager(fail=True)
        result = await InAppChannelDispatcher(manager).send(DeliveryContext(db_session), content, recipient)
        assert result.success is True


class TestPushChannel:
    async def test_reports_not_implemented(self, db_session, content, recipient):
        result = await PushChannelDispatcher().send(DeliveryContext(db_session), content, recipient)
        assert result.success is False
        assert result.reason == "Push notifications not implemented"


class TestDispatcher:
    async def test_unknown_channel(self, db_session, content, recipient):
        dispatcher = NotificationDispatcher({"push": PushChannelDispatcher()})
        result = await dispatcher.deliver(DeliveryContext(db_session), content, recipient, "fax")
        assert result.success is False
        assert result.reason == "Unknown channel: fax"

    async def test_channel_disabled_by_preference(self, db_session, content, recipient):
        client = FakeEmailClient()
        dispatcher = NotificationDispatcher({"email": EmailChannelDispatcher(client)})
        prefs = NotificationPreference(user_id="u1", in_app=True, email=False, sms=True, push=True, muted_types=[])

        result = await dispatcher.deliver(DeliveryContext(db_session), content, recipient, "email", prefs)

        assert result.reason == "Disabled by user preference"
        assert client.sent == []

    async def test_muted_type_blocks_every_channel(self, db_session, content, recipient):
        prefs = NotificationPreference(
            user_id="u1", in_app=True, email=True, sms=True, push=True, muted_types=["lead_created"]
        )
        dispatcher = NotificationDispatcher({"in_app": InAppChannelDispatcher(FakeConnectionManager())})
        result = await dispatcher.deliver(DeliveryContext(db_session), content, recipient, "in_app", prefs)
        assert result.reason == "Disabled by user preference"
