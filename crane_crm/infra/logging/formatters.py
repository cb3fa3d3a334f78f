"""JSON Lines formatter with trace correlation."""
from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from opentelemetry import trace

# Attributes every LogRecord has; anything else came from extra= or the context filter
_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """One JSON object per line.

    ``extra=`` values and fields injected by ContextInjectingFilter become
    top-level keys. When an OpenTelemetry span is active its ids are added.

    Example output:
        {"timestamp": "2025-06-01T09:00:00.123Z", "level": "INFO", "logger": "crane_crm.features.notifications.engine",
         "message": "Notification sent", "service": "crane-crm", "notification_type": "lead_created"}
    """

    def __init__(self, static: dict[str, Any] | None = None) -> None:
        super().__init__()
        self.static = static or {}

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **self.static,
        }

        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            data["trace_id"] = format(span_context.trace_id, "032x")
            data["span_id"] = format(span_context.span_id, "016x")

        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            data["stack_trace"] = record.stack_info

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and key not in data:
                data[key] = value

        # json.dumps escapes embedded newlines, so a traceback stays on one line
        return json.dumps(data, ensure_ascii=False, default=str)
