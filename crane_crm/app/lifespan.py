"""Application lifespan management.

Startup Order:
1. Core (logging)
2. Database (PostgreSQL, or the local SQLite fallback with schema creation)
3. Notification defaults (built-in templates and rules)
4. WebSocket connection manager
5. Scheduler (scheduled-notification sweep)

Shutdown Order: Reverse of startup.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import TYPE_CHECKING

from crane_crm.core.settings import (
    get_app_settings,
    get_db_settings,
    get_logging_settings,
    get_notification_settings,
    get_pdf_settings,
    get_websocket_settings,
)
from crane_crm.infra.logging.config import setup_logging, shutdown as shutdown_logging

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

logger = logging.getLogger(__name__)

_websocket_enabled = False
_scheduler_started = False


def get_websocket_enabled() -> bool:
    """Check if the WebSocket manager was successfully started."""
    return _websocket_enabled


async def _startup_core() -> None:
    app = get_app_settings()
    setup_logging(log_settings=get_logging_settings(), force=True)
    logger.info(
        "Application starting",
        extra={"service": app.service_name, "environment": app.environment, "version": app.version},
    )


async def _startup_database() -> None:
    from crane_crm.infra.database.session import init_database

    db = get_db_settings()
    try:
        await init_database()
    except Exception as e:
        if db.startup_require_db:
            logger.exception(
                "Database required but unavailable, failing startup",
                extra={"error": str(e), "startup_require_db": True},
            )
            raise
        logger.warning(
            "Database unavailable, continuing in degraded mode",
            extra={"error": str(e), "startup_require_db": False},
        )


async def _startup_notification_defaults() -> None:
    from crane_crm.features.notifications.defaults import seed_defaults
    from crane_crm.infra.database.session import get_async_session

    if not get_notification_settings().seed_defaults_on_startup:
        return
    try:
        async with get_async_session() as session:
            await seed_defaults(session)
    except Exception as e:
        logger.warning("Could not seed notification defaults", extra={"error": str(e)})


async def _startup_websocket() -> None:
    global _websocket_enabled

    from crane_crm.infra.realtime import start_connection_manager

    _websocket_enabled = False
    if not get_websocket_settings().enabled:
        return

    try:
        await start_connection_manager()
        _websocket_enabled = True
        logger.info("WebSocket connection manager initialized")
    except Exception as e:
        logger.warning(
            "Failed to start WebSocket manager, realtime features disabled",
            extra={"error": str(e)},
        )


async def _startup_scheduler() -> None:
    global _scheduler_started

    from crane_crm.tasks.scheduler import setup_scheduled_jobs, start_scheduler

    if not get_notification_settings().sweep_enabled:
        logger.info("Scheduled notification sweep disabled")
        return

    setup_scheduled_jobs()
    await start_scheduler()
    _scheduler_started = True


async def _shutdown_scheduler() -> None:
    global _scheduler_started

    from crane_crm.tasks.scheduler import stop_scheduler

    if _scheduler_started:
        await stop_scheduler()
        _scheduler_started = False


async def _shutdown_websocket() -> None:
    global _websocket_enabled

    from crane_crm.infra.realtime import stop_connection_manager

    if _websocket_enabled:
        await stop_connection_manager()
        _websocket_enabled = False
        logger.info("WebSocket connection manager stopped")


async def _shutdown_database() -> None:
    from crane_crm.infra.database.session import close_database

    await close_database()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle.

    Args:
        app: FastAPI application instance.

    Yields:
        None during application runtime.
    """
    _ = app

    await _startup_core()
    await _startup_database()
    await _startup_notification_defaults()
    await _startup_websocket()
    await _startup_scheduler()

    pdf = get_pdf_settings()
    logger.info(
        "Application startup complete",
        extra={
            "database_configured": get_db_settings().is_configured,
            "pdf_enabled": pdf.enabled,
            "websocket_enabled": _websocket_enabled,
            "scheduler_started": _scheduler_started,
        },
    )

    yield

    logger.info("Application shutting down")
    await _shutdown_scheduler()
    await _shutdown_websocket()
    await _shutdown_database()
    logger.info("Application shutdown complete")
    shutdown_logging()
