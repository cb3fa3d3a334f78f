"""Generic repository for SQLAlchemy models.

Repositories hold queries only. The session is always passed in and the
caller owns the transaction, so a service can combine several repository
calls in one commit.

Example:
    class UserRepository(BaseRepository[User]):
        async def list_by_roles(self, session: AsyncSession, roles: list[str]) -> Sequence[User]:
            stmt = select(User).where(User.role.in_(roles), User.is_active.is_(True))
            result = await session.execute(stmt)
            return result.scalars().all()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlalchemy import select

from crane_crm.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.orm import InstrumentedAttribute

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """Primary-key lookup, single-column lookup and insert for one model."""

    __slots__ = ("model", "_logger", "_lazy")

    def __init__(self, model: type[T]) -> None:
        self.model = model
        self._logger = logging.getLogger(f"repository.{model.__name__}")
        self._lazy = get_lazy_logger(f"repository.{model.__name__}")

    async def get(self, session: AsyncSession, id: Any) -> T | None:  # noqa: A002
        """Entity by primary key, or None."""
        instance = await session.get(self.model, id)

        self._lazy.debug(
            lambda: f"db.get: {self.model.__name__}({id}) -> {'found' if instance else 'not found'}"
        )
        return instance

    async def get_by(
        self,
        session: AsyncSession,
        attr: InstrumentedAttribute[Any],
        value: Any,
    ) -> T | None:
        """First entity whose ``attr`` equals ``value``."""
        stmt = select(self.model).where(attr == value).limit(1)
        result = await session.execute(stmt)
        instance = result.scalars().first()

        self._lazy.debug(
            lambda: f"db.get_by: {self.model.__name__}.{attr.key}={value!r} -> {'found' if instance else 'not found'}"
        )
        return instance

    async def create(self, session: AsyncSession, instance: T) -> T:
        """Add, flush and refresh so generated columns such as ``id`` are loaded."""
        session.add(instance)
        await session.flush()
        await session.refresh(instance)

        entity_id = getattr(instance, "id", None)
        self._lazy.debug(lambda: f"db.create: {self.model.__name__}(id={entity_id})")
        return instance
