"""Modular Pydantic Settings v2 configuration.

Settings are split by domain (app/db/email/sms/pdf/notifications/logging/ws),
read from environment variables or a .env file, frozen after validation and
served through LRU-cached loaders:

    from crane_crm.core.settings import get_app_settings

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. Environment variables
    3. .env file
"""

from __future__ import annotations

from .loader import (
    clear_all_caches,
    get_app_settings,
    get_db_settings,
    get_email_settings,
    get_logging_settings,
    get_notification_settings,
    get_pdf_settings,
    get_sms_settings,
    get_websocket_settings,
)

__all__ = [
    "clear_all_caches",
    "get_app_settings",
    "get_db_settings",
    "get_email_settings",
    "get_logging_settings",
    "get_notification_settings",
    "get_pdf_settings",
    "get_sms_settings",
    "get_websocket_settings",
]
