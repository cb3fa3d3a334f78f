"""Database dependencies for FastAPI route handlers.

Two session getters share one session factory:

1. `get_db_session()` (this module): FastAPI dependency, lifetime tied to the
   HTTP request.
2. `get_async_session()` (infra.database): plain async context manager for
   the scheduler and scripts.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from crane_crm.infra.database import get_async_session


async def get_db_session() -> AsyncGenerator[AsyncSession]:
    """FastAPI dependency for database session.

    Yields:
        Database session that is automatically closed after request.
    """
    async with get_async_session() as session:
        yield session


SessionDep = Annotated[AsyncSession, Depends(get_db_session)]
