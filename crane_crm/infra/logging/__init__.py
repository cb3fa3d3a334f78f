"""Structured logging for the service.

Usage:
    from crane_crm.infra.logging import setup_logging, get_logger

    setup_logging()
    logger = get_logger(__name__, channel="sms")
"""

from __future__ import annotations

from .config import configure_logging, setup_logging, shutdown
from .context import (
    ContextBoundLogger,
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    get_logger,
    set_log_context,
)
from .formatters import JSONFormatter
from .lazy import LazyLoggerAdapter, get_lazy_logger

__all__ = [
    "ContextBoundLogger",
    "ContextInjectingFilter",
    "JSONFormatter",
    "LazyLoggerAdapter",
    "clear_log_context",
    "configure_logging",
    "get_lazy_logger",
    "get_log_context",
    "get_logger",
    "set_log_context",
    "setup_logging",
    "shutdown",
]
