"""Tests for the structured logging helpers."""
from __future__ import annotations

import json
import logging
import sys

import pytest

from crane_crm.infra.logging import (
    ContextInjectingFilter,
    JSONFormatter,
    clear_log_context,
    get_lazy_logger,
    get_log_context,
    get_logger,
    set_log_context,
)


def _record(msg: str = "Notification sent", **extra) -> logging.LogRecord:
    record = logging.makeLogRecord({"name": "crane_crm.test", "levelname": "INFO", "levelno": 20, "msg": msg})
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def _reset_context():
    clear_log_context()
    yield
    clear_log_context()


@pytest.mark.unit
class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_basic_fields(self):
        """Level, logger, message, timestamp and static fields are present."""
        data = json.loads(JSONFormatter(static={"service": "crane-crm"}).format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "crane_crm.test"
        assert data["message"] == "Notification sent"
        assert data["service"] == "crane-crm"
        assert data["timestamp"].endswith("Z")
        assert "trace_id" not in data

    def test_extra_fields_are_top_level(self):
        """Values passed with extra= become keys."""
        data = json.loads(JSONFormatter().format(_record(notification_type="lead_created", user_id="u1")))

        assert data["notification_type"] == "lead_created"
        assert data["user_id"] == "u1"

    def test_exception_stays_on_one_line(self):
        """Tracebacks are serialised inside the single JSON line."""
        try:
            raise RuntimeError("SMTP connection reset")
        except RuntimeError:
            record = _record()
            record.exc_info = sys.exc_info()

        line = JSONFormatter().format(record)

        assert "\n" not in line
        assert "SMTP connection reset" in json.loads(line)["exception"]


@pytest.mark.unit
class TestLogContext:
    """Tests for the ContextVar-backed context."""

    def test_filter_injects_without_overwriting(self):
        """Context fields are copied unless the record already has them."""
        set_log_context(request_id="req-1", user_id="ctx-user")
        record = _record(user_id="explicit")

        assert ContextInjectingFilter().filter(record) is True
        assert record.request_id == "req-1"
        assert record.user_id == "explicit"

    def test_set_merges_and_clear_resets(self):
        """set_log_context merges; clear_log_context empties."""
        set_log_context(request_id="req-1")
        set_log_context(path="/api/notifications")
        assert get_log_context() == {"request_id": "req-1", "path": "/api/notifications"}

        clear_log_context()
        assert get_log_context() == {}


@pytest.mark.unit
class TestAdapters:
    """Tests for get_logger and get_lazy_logger."""

    def test_bound_context_merges_with_extra(self, caplog):
        """Bound fields and per-call extra both reach the record."""
        log = get_logger("crane_crm.test.bound", channel="email")

        with caplog.at_level(logging.INFO, logger="crane_crm.test.bound"):
            log.info("Email sent", extra={"user_id": "u1"})

        record = caplog.records[-1]
        assert record.channel == "email"
        assert record.user_id == "u1"

    def test_lazy_message_not_built_when_disabled(self):
        """The callable is skipped below the logger's level."""
        logging.getLogger("crane_crm.test.lazy").setLevel(logging.INFO)
        calls = []

        get_lazy_logger("crane_crm.test.lazy").debug(lambda: calls.append("built") or "expensive")

        assert calls == []

    def test_lazy_message_built_when_enabled(self, caplog):
        """The callable's result becomes the message."""
        with caplog.at_level(logging.DEBUG, logger="crane_crm.test.lazy2"):
            get_lazy_logger("crane_crm.test.lazy2").debug(lambda: "Rendered 120 bytes")

        assert caplog.records[-1].getMessage() == "Rendered 120 bytes"
