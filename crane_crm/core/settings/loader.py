"""LRU-cached settings loaders.

Settings are loaded and validated once, then cached for the lifetime of the
process.

Usage:
    from crane_crm.core.settings import get_email_settings

    settings = get_email_settings()

Testing:
    Clear the cache to force a reload after changing the environment:
    get_email_settings.cache_clear()
"""

from __future__ import annotations

from functools import lru_cache

from .app import AppSettings
from .database import DatabaseSettings
from .email import EmailSettings
from .logs import LoggingSettings
from .notifications import NotificationSettings
from .pdf import PdfSettings
from .sms import SmsSettings
from .websocket import WebSocketSettings


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """Get cached application settings.

    Returns:
        Validated and frozen AppSettings instance.
    """
    return AppSettings()


@lru_cache(maxsize=1)
def get_db_settings() -> DatabaseSettings:
    """Get cached database settings.

    Returns:
        Validated and frozen DatabaseSettings instance.
    """
    return DatabaseSettings()


@lru_cache(maxsize=1)
def get_email_settings() -> EmailSettings:
    """Get cached email settings."""
    return EmailSettings()


@lru_cache(maxsize=1)
def get_sms_settings() -> SmsSettings:
    """Get cached SMS carrier settings."""
    return SmsSettings()


@lru_cache(maxsize=1)
def get_pdf_settings() -> PdfSettings:
    """Get cached PDF export settings."""
    return PdfSettings()


@lru_cache(maxsize=1)
def get_notification_settings() -> NotificationSettings:
    """Get cached notification engine settings."""
    return NotificationSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings.

    Returns:
        Validated and frozen LoggingSettings instance.
    """
    return LoggingSettings()


@lru_cache(maxsize=1)
def get_websocket_settings() -> WebSocketSettings:
    """Get cached WebSocket settings."""
    return WebSocketSettings()


def clear_all_caches() -> None:
    """Clear every cached settings instance (tests only)."""
    for loader in (
        get_app_settings,
        get_db_settings,
        get_email_settings,
        get_sms_settings,
        get_pdf_settings,
        get_notification_settings,
        get_logging_settings,
        get_websocket_settings,
    ):
        loader.cache_clear()
