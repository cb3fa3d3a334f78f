"""Repository for CRM users."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from crane_crm.core.database.repository import BaseRepository
from crane_crm.features.users.models import User

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession


class UserRepository(BaseRepository[User]):
    """Queries for users (read only)."""

    def __init__(self) -> None:
        super().__init__(User)

    async def list_active_by_roles(
        self,
        session: AsyncSession,
        roles: Iterable[str],
    ) -> Sequence[User]:
        """Active users holding any of ``roles``, ordered by id."""
        roles = list(roles)
        if not roles:
            return []
        stmt = (
            select(User)
            .where(User.role.in_(roles), User.is_active.is_(True))
            .order_by(User.id)
        )
        result = await session.execute(stmt)
        users = result.scalars().all()

        self._lazy.debug(lambda: f"db.list_active_by_roles({roles}) -> {len(users)} users")
        return users

    async def get_many(self, session: AsyncSession, user_ids: Iterable[str]) -> dict[str, User]:
        """Users keyed by id. Unknown ids are simply absent."""
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return {}
        result = await session.execute(select(User).where(User.id.in_(ids)))
        return {user.id: user for user in result.scalars().all()}


_user_repository: UserRepository | None = None


def get_user_repository() -> UserRepository:
    """Get UserRepository singleton instance."""
    global _user_repository
    if _user_repository is None:
        _user_repository = UserRepository()
    return _user_repository
