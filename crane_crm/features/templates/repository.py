"""Repository for quotation templates."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select, update

from crane_crm.core.database.repository import BaseRepository
from crane_crm.features.templates.models import QuotationTemplate

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession


class QuotationTemplateRepository(BaseRepository[QuotationTemplate]):
    """Queries for quotation templates.

    Soft-deleted templates (``is_active = false``) are hidden unless a caller
    asks for them explicitly.
    """

    def __init__(self) -> None:
        super().__init__(QuotationTemplate)

    async def list_templates(
        self,
        session: AsyncSession,
        *,
        include_inactive: bool = False,
    ) -> Sequence[QuotationTemplate]:
        """Templates with the default first, then most recently updated."""
        stmt = select(QuotationTemplate)
        if not include_inactive:
            stmt = stmt.where(QuotationTemplate.is_active.is_(True))
        stmt = stmt.order_by(
            QuotationTemplate.is_default.desc(),
            QuotationTemplate.updated_at.desc(),
            QuotationTemplate.id.desc(),
        )
        result = await session.execute(stmt)
        items = result.scalars().all()

        self._lazy.debug(lambda: f"db.list_templates({include_inactive=}) -> {len(items)} templates")
        return items

    async def get_active(self, session: AsyncSession, template_id: int) -> QuotationTemplate | None:
        template = await self.get(session, template_id)
        if template is None or not template.is_active:
            return None
        return template

    async def get_default(self, session: AsyncSession) -> QuotationTemplate | None:
        stmt = (
            select(QuotationTemplate)
            .where(
                QuotationTemplate.is_default.is_(True),
                QuotationTemplate.is_active.is_(True),
            )
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    async def clear_defaults(self, session: AsyncSession) -> int:
        """Unset the default flag on every template.

        On PostgreSQL the current default rows are locked first so two
        concurrent callers serialise on them.

        Returns:
            Number of rows that were default.
        """
        if session.get_bind().dialect.name == "postgresql":
            await session.execute(
                select(QuotationTemplate.id)
                .where(QuotationTemplate.is_default.is_(True))
                .with_for_update()
            )
        result = await session.execute(
            update(QuotationTemplate)
            .where(QuotationTemplate.is_default.is_(True))
            .values(is_default=False)
            .execution_options(synchronize_session="fetch")
        )
        cleared = result.rowcount or 0
        self._lazy.debug(lambda: f"db.clear_defaults() -> {cleared} rows")
        return cleared


_template_repository: QuotationTemplateRepository | None = None


def get_template_repository() -> QuotationTemplateRepository:
    """Get QuotationTemplateRepository singleton instance."""
    global _template_repository
    if _template_repository is None:
        _template_repository = QuotationTemplateRepository()
    return _template_repository
