"""Router registry and setup."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from crane_crm.core.settings import get_app_settings, get_websocket_settings
from crane_crm.features.health.router import router as health_router
from crane_crm.features.metrics.router import router as metrics_router
from crane_crm.features.notifications.router import router as notifications_router
from crane_crm.features.templates.router import router as templates_router

if TYPE_CHECKING:
    from fastapi import FastAPI

    from crane_crm.core.settings.app import AppSettings
    from crane_crm.core.settings.websocket import WebSocketSettings

logger = logging.getLogger(__name__)


def setup_routers(
    app: FastAPI,
    app_settings: AppSettings | None = None,
    websocket_settings: WebSocketSettings | None = None,
) -> None:
    """Register all feature routers with the application.

    Args:
        app: FastAPI application instance.
        app_settings: Optional application settings override for the API prefix.
        websocket_settings: Optional override for realtime/WebSocket behavior.
    """
    app_settings = app_settings or get_app_settings()
    websocket_settings = websocket_settings or get_websocket_settings()

    api_prefix = app_settings.api_prefix

    # Scrape endpoint at /metrics, no prefix
    app.include_router(metrics_router)

    app.include_router(health_router, prefix=api_prefix)
    app.include_router(templates_router, prefix=api_prefix)
    app.include_router(notifications_router, prefix=api_prefix)

    if websocket_settings.enabled:
        from crane_crm.features.realtime.router import router as realtime_router

        app.include_router(realtime_router, prefix=api_prefix)
        logger.info("WebSocket realtime router included - endpoints at %s/ws", api_prefix)

    logger.info(
        "Router setup complete",
        extra={"api_prefix": api_prefix, "websocket_enabled": websocket_settings.enabled},
    )
