"""Unit tests for the Twilio SMS client."""
from __future__ import annotations

import httpx
import pytest

from crane_crm.core.settings.sms import SmsSettings
from crane_crm.infra.sms import SmsClient

SETTINGS = SmsSettings(account_sid="AC123", auth_token="secret", from_number="+15550001111")


def _client(handler) -> SmsClient:
    return SmsClient(SETTINGS, transport=httpx.MockTransport(handler))


@pytest.mark.unit
class TestSmsSettings:
    """Tests for SmsSettings."""

    def test_requires_credentials(self):
        """SMS is configured only with an account SID and auth token."""
        assert SETTINGS.is_configured is True
        assert SmsSettings(account_sid="AC123").is_configured is False
        assert SmsSettings(account_sid="AC123", auth_token="x", enabled=False).is_configured is False

    def test_messages_url(self):
        """The Messages resource is scoped to the account."""
        assert SETTINGS.messages_url == "https://api.twilio.com/2010-04-01/Accounts/AC123/Messages.json"


@pytest.mark.unit
class TestSmsClient:
    """Tests for SmsClient.send."""

    async def test_success(self):
        """A 201 response yields the message SID."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = request.content.decode()
            return httpx.Response(201, json={"sid": "SM42", "status": "queued"})

        result = await _client(handler).send("+919800000001", "Job assigned: Tower erection")

        assert result.success is True
        assert result.message_id == "SM42"
        assert result.status_code == 201
        assert seen["url"].endswith("/Accounts/AC123/Messages.json")
        assert seen["auth"].startswith("Basic ")
        assert "To=%2B919800000001" in seen["body"]
        assert "From=%2B15550001111" in seen["body"]

    async def test_carrier_error_message(self):
        """Twilio's error message is surfaced on non-2xx responses."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"code": 21211, "message": "Invalid 'To' Phone Number"})

        result = await _client(handler).send("bad", "hi")

        assert result.success is False
        assert result.status_code == 400
        assert result.error == "Invalid 'To' Phone Number"

    async def test_non_json_error(self):
        """A non-JSON error body falls back to the status code."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="Service Unavailable")

        result = await _client(handler).send("+919800000001", "hi")
        assert result.error == "HTTP 503"

    async def test_timeout(self):
        """Timeouts are reported, not raised."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        result = await _client(handler).send("+919800000001", "hi")

        assert result.success is False
        assert result.error == "Request timeout after 10.0s"

    async def test_transport_error(self):
        """Connection errors are reported, not raised."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        result = await _client(handler).send("+919800000001", "hi")

        assert result.success is False
        assert "connection refused" in result.error
