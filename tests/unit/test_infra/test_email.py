"""Unit tests for the SMTP email client."""
from __future__ import annotations

import aiosmtplib
from pydantic import ValidationError
import pytest

from crane_crm.core.settings.email import EmailSettings
from crane_crm.infra.email import EmailMessage, EmailPriority, SMTPClient

SETTINGS = EmailSettings(
    enabled=True,
    smtp_host="smtp.aspcranes.com",
    smtp_username="mailer",
    smtp_password="secret",
)


class FakeSMTP:
    """Stand-in for aiosmtplib.SMTP recording what was sent."""

    instances: list[FakeSMTP] = []
    fail_with: Exception | None = None

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.login_args = None
        self.sent = []
        FakeSMTP.instances.append(self)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def login(self, username, password):
        self.login_args = (username, password)

    async def send_message(self, message):
        if FakeSMTP.fail_with is not None:
            raise FakeSMTP.fail_with
        self.sent.append(message)
        return {}, "OK"


@pytest.fixture
def fake_smtp(monkeypatch: pytest.MonkeyPatch) -> type[FakeSMTP]:
    FakeSMTP.instances = []
    FakeSMTP.fail_with = None
    monkeypatch.setattr(aiosmtplib, "SMTP", FakeSMTP)
    return FakeSMTP


@pytest.mark.unit
class TestEmailSettings:
    """Tests for EmailSettings validation."""

    def test_configured_requires_enabled_and_host(self):
        """Email counts as configured only when enabled with a host."""
        assert SETTINGS.is_configured is True
        assert EmailSettings(enabled=True).is_configured is False
        assert EmailSettings(enabled=False, smtp_host="smtp.example.com").is_configured is False

    def test_tls_and_ssl_exclusive(self):
        """STARTTLS and implicit SSL cannot both be enabled."""
        with pytest.raises(ValidationError):
            EmailSettings(use_tls=True, use_ssl=True)

    def test_credentials_together(self):
        """A username without a password is rejected."""
        with pytest.raises(ValidationError):
            EmailSettings(smtp_username="mailer")


@pytest.mark.unit
class TestEmailMessage:
    """Tests for EmailMessage validation."""

    def test_requires_a_body(self):
        """At least one of body_text and body_html is required."""
        with pytest.raises(ValueError):
            EmailMessage(to=["a@b.com"], subject="Hi")

    def test_rejects_invalid_address(self):
        """Recipients must be valid addresses."""
        with pytest.raises(ValidationError):
            EmailMessage(to=["not-an-address"], subject="Hi", body_text="x")


@pytest.mark.unit
class TestSMTPClient:
    """Tests for SMTPClient.send."""

    async def test_send_builds_multipart(self, fake_smtp):
        """Plain and HTML parts are sent with the configured sender."""
        client = SMTPClient(SETTINGS)
        message = EmailMessage(
            to=["a@b.com"],
            subject="New Lead: Acme Infra",
            body_text="New lead received",
            body_html="<h2>New Lead Received</h2>",
            priority=EmailPriority.HIGH,
        )

        result = await client.send(message)

        assert result.success is True
        assert result.recipients_accepted == ["a@b.com"]
        assert result.message_id.endswith("@smtp.aspcranes.com>")
        smtp = fake_smtp.instances[0]
        assert smtp.kwargs["hostname"] == "smtp.aspcranes.com"
        assert smtp.kwargs["start_tls"] is True
        assert smtp.login_args == ("mailer", "secret")
        mime = smtp.sent[0]
        assert mime["From"] == "ASP Cranes <noreply@aspcranes.com>"
        assert mime["X-Priority"] == "1"
        assert [part.get_content_type() for part in mime.get_payload()] == ["text/plain", "text/html"]

    async def test_auth_failure(self, fake_smtp):
        """Authentication errors map to AUTH_FAILED."""
        fake_smtp.fail_with = aiosmtplib.SMTPAuthenticationError(535, "bad credentials")

        result = await SMTPClient(SETTINGS).send(EmailMessage(to=["a@b.com"], subject="Hi", body_text="x"))

        assert result.success is False
        assert result.error_code == "AUTH_FAILED"

    async def test_unexpected_error(self, fake_smtp):
        """Any other error is reported, never raised."""
        fake_smtp.fail_with = OSError("network unreachable")

        result = await SMTPClient(SETTINGS).send(EmailMessage(to=["a@b.com"], subject="Hi", body_text="x"))

        assert result.success is False
        assert result.error_code == "UNEXPECTED_ERROR"
        assert result.error == "network unreachable"

    def test_html_only_body(self):
        """An HTML-only message is a single text/html part."""
        mime = SMTPClient(SETTINGS).build_mime(
            EmailMessage(to=["a@b.com"], subject="Hi", body_html="<p>Payment overdue</p>")
        )

        assert mime.get_content_type() == "text/html"
        assert "X-Priority" not in mime

    @pytest.mark.parametrize(
        ("notification_priority", "expected"),
        [
            ("urgent", EmailPriority.HIGH),
            ("high", EmailPriority.HIGH),
            ("medium", EmailPriority.NORMAL),
            ("low", EmailPriority.LOW),
        ],
    )
    def test_priority_mapping(self, notification_priority, expected):
        """Notification priorities map onto email priorities."""
        assert EmailPriority.from_notification(notification_priority) is expected
