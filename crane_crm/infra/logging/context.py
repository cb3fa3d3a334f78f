"""Per-task logging context.

The request middleware stores ``request_id`` and ``path`` here and the
scheduled sweep stores the row it is processing. ContextInjectingFilter
copies the fields onto every record, so call sites never pass them.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any

_log_context: ContextVar[dict[str, Any] | None] = ContextVar("log_context", default=None)


def set_log_context(**fields: Any) -> None:
    """Merge ``fields`` into the context of the current task."""
    _log_context.set({**(_log_context.get() or {}), **fields})


def get_log_context() -> dict[str, Any]:
    return dict(_log_context.get() or {})


def clear_log_context() -> None:
    _log_context.set(None)


class ContextInjectingFilter(logging.Filter):
    """Copy context fields onto each record without overwriting existing attributes.

    Installed on the root logger through dictConfig:

        "filters": {"context": {"()": "crane_crm.infra.logging.context.ContextInjectingFilter"}},
        "root": {"filters": ["context"]}
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in (_log_context.get() or {}).items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class ContextBoundLogger(logging.LoggerAdapter):
    """Adapter whose bound fields are merged into every call's ``extra``.

    Example:
        log = get_logger(__name__, channel="email")
        log.info("Email sent", extra={"user_id": "u-1"})  # carries channel and user_id
    """

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        kwargs["extra"] = {**(self.extra or {}), **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(name: str, **context: Any) -> ContextBoundLogger:
    """Logger for ``name`` with ``context`` attached to every record."""
    return ContextBoundLogger(logging.getLogger(name), context)
