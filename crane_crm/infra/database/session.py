"""Database session management for the async SQLAlchemy engine."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from crane_crm.core.settings import get_app_settings, get_db_settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)

db_settings = get_db_settings()
app_settings = get_app_settings()

engine = create_async_engine(
    db_settings.get_sqlalchemy_url(),
    **{**db_settings.engine_kwargs(), "echo": db_settings.echo or app_settings.debug},
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Get async database session.

    Yields:
        Database session that is automatically closed.

    Example:
        async with get_async_session() as session:
            await seed_defaults(session)
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def _create_local_schema() -> None:
    """Create every table on the SQLite fallback database.

    PostgreSQL deployments are migrated with Alembic instead.
    """
    from crane_crm.core.database import Base
    from crane_crm.features.notifications import models as _notification_models  # noqa: F401
    from crane_crm.features.templates import models as _template_models  # noqa: F401
    from crane_crm.features.users import models as _user_models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_database() -> None:
    """Verify connectivity at startup.

    Raises:
        Exception: Re-raised when the database cannot be reached.
    """
    db_url = db_settings.get_sqlalchemy_url()
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

        if not db_settings.is_configured:
            await _create_local_schema()

        logger.info(
            "Database connection established successfully",
            extra={"dialect": engine.dialect.name, "configured": db_settings.is_configured},
        )
    except Exception as e:
        logger.error(
            "Failed to connect to database",
            extra={"dialect": engine.dialect.name, "error": str(e)},
        )
        raise


async def close_database() -> None:
    """Dispose of the engine's connection pool on shutdown."""
    logger.info("Closing database connection")

    try:
        await engine.dispose()
        logger.info("Database connection closed successfully")
    except Exception as e:
        logger.exception("Error closing database connection", extra={"error": str(e)})
