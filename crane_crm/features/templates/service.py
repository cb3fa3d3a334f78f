"""Quotation template store and document generation."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import TYPE_CHECKING, Any, Literal

from sqlalchemy.exc import IntegrityError

from crane_crm.core.exceptions import ConflictException, NotFoundException
from crane_crm.core.services.base import BaseService
from crane_crm.features.templates.assembler import DocumentAssembler
from crane_crm.features.templates.builder import TemplateBuilder
from crane_crm.features.templates.elements import normalize_elements
from crane_crm.features.templates.models import QuotationTemplate
from crane_crm.features.templates.repository import (
    QuotationTemplateRepository,
    get_template_repository,
)
from crane_crm.features.templates.sample import sample_quotation_data
from crane_crm.infra.pdf import PdfGenerator, PdfOptions, PdfResult, get_pdf_generator

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from crane_crm.features.templates.schemas import TemplateBase, TemplateCreate, TemplateUpdate


class QuotationTemplateService(BaseService):
    """Template CRUD, the single-default rule and HTML/PDF generation.

    Methods that modify data commit their own transaction.

    Example:
        service = QuotationTemplateService()
        template = await service.create_template(session, TemplateCreate(name="Standard"))
        html = await service.preview(session, template_id=template.id)
    """

    def __init__(
        self,
        repository: QuotationTemplateRepository | None = None,
        assembler: DocumentAssembler | None = None,
        pdf_generator: PdfGenerator | None = None,
    ) -> None:
        super().__init__()
        self.repository = repository or get_template_repository()
        self.assembler = assembler or DocumentAssembler()
        self._pdf_generator = pdf_generator

    @property
    def pdf_generator(self) -> PdfGenerator:
        if self._pdf_generator is None:
            self._pdf_generator = get_pdf_generator()
        return self._pdf_generator

    # Store

    async def create_template(
        self,
        session: AsyncSession,
        payload: TemplateCreate,
        *,
        created_by: str | None = None,
    ) -> QuotationTemplate:
        config = TemplateBuilder().create(payload.model_dump(exclude={"is_default"})).template
        template = QuotationTemplate(
            name=config["name"],
            description=config.get("description"),
            theme=config["theme"],
            elements=config["elements"],
            styles=payload.styles,
            layout=config["layout"],
            settings=config["settings"],
            branding=config["branding"],
            is_default=False,
            is_active=True,
            version=1,
            created_by=created_by,
        )
        async with self._default_change(session):
            await self.repository.create(session, template)
            if payload.is_default:
                await self._make_default(session, template)
            await session.commit()

        self.logger.info(
            "Template created",
            extra={"template_id": template.id, "template_name": template.name, "is_default": template.is_default},
        )
        return template

    async def get_template(
        self,
        session: AsyncSession,
        template_id: int,
        *,
        include_inactive: bool = False,
    ) -> QuotationTemplate:
        """Fetch a template.

        Raises:
            NotFoundException: If the template does not exist or is soft-deleted.
        """
        if include_inactive:
            template = await self.repository.get(session, template_id)
        else:
            template = await self.repository.get_active(session, template_id)
        if template is None:
            raise NotFoundException(
                detail=f"Template {template_id} not found",
                type="template-not-found",
                extra={"template_id": template_id},
            )
        return template

    async def list_templates(
        self,
        session: AsyncSession,
        *,
        include_inactive: bool = False,
    ) -> Sequence[QuotationTemplate]:
        return await self.repository.list_templates(session, include_inactive=include_inactive)

    async def update_template(
        self,
        session: AsyncSession,
        template_id: int,
        payload: TemplateUpdate,
    ) -> QuotationTemplate:
        """Apply a partial update and bump ``version``."""
        template = await self.get_template(session, template_id)
        changes = payload.model_dump(exclude_unset=True, exclude={"is_default"})

        async with self._default_change(session, template_id):
            for field, value in changes.items():
                if value is None and field not in ("description",):
                    continue
                if field == "elements":
                    value = normalize_elements(value)
                setattr(template, field, value)
            template.version += 1

            if payload.is_default is True:
                await self._make_default(session, template)
            elif payload.is_default is False:
                template.is_default = False

            await session.flush()
            await session.commit()
        self.logger.info(
            "Template updated",
            extra={"template_id": template.id, "version": template.version, "fields": sorted(changes)},
        )
        return template

    async def delete_template(self, session: AsyncSession, template_id: int) -> None:
        """Soft delete: the row stays, inactive and no longer default."""
        template = await self.get_template(session, template_id)
        template.is_active = False
        template.is_default = False
        await session.commit()
        self.logger.info("Template deactivated", extra={"template_id": template_id})

    async def set_default(self, session: AsyncSession, template_id: int) -> QuotationTemplate:
        """Make ``template_id`` the only default template.

        Clearing the previous default and setting the new one happen in one
        transaction; on failure nothing changes.
        """
        async with self._default_change(session, template_id):
            template = await self.get_template(session, template_id)
            await self._make_default(session, template)
            await session.commit()

        self.logger.info("Default template changed", extra={"template_id": template_id})
        return template

    async def get_default(self, session: AsyncSession) -> QuotationTemplate | None:
        return await self.repository.get_default(session)

    async def duplicate_template(
        self,
        session: AsyncSession,
        template_id: int,
        name: str | None = None,
        *,
        created_by: str | None = None,
    ) -> QuotationTemplate:
        """Copy a template as a new, non-default template at version 1."""
        source = await self.get_template(session, template_id)
        config = TemplateBuilder().import_(
            {
                "name": name or f"{source.name} (Copy)",
                "description": source.description,
                "theme": source.theme,
                "elements": source.elements,
                "layout": source.layout,
                "settings": source.settings,
                "branding": source.branding,
            }
        ).template
        copy = QuotationTemplate(
            name=config["name"],
            description=config.get("description"),
            theme=config["theme"],
            elements=config["elements"],
            styles=dict(source.styles or {}),
            layout=config["layout"],
            settings=config["settings"],
            branding=config["branding"],
            is_default=False,
            is_active=True,
            version=1,
            created_by=created_by or source.created_by,
        )
        await self.repository.create(session, copy)
        await session.commit()
        self.logger.info(
            "Template duplicated",
            extra={"source_id": template_id, "template_id": copy.id},
        )
        return copy

    # Rendering

    def render_html(
        self,
        template: QuotationTemplate | dict[str, Any],
        context: dict[str, Any] | None,
        *,
        generated_at: datetime | None = None,
        preview: bool = False,
    ) -> str:
        return self.assembler.assemble(template, context, generated_at=generated_at, preview=preview)

    async def preview(
        self,
        session: AsyncSession,
        *,
        template_id: int | None = None,
        template: TemplateBase | None = None,
        data: dict[str, Any] | None = None,
        generated_at: datetime | None = None,
    ) -> str:
        """Render a stored or inline template, using sample data when none is given."""
        source = await self._resolve_source(session, template_id, template)
        return self.render_html(
            source,
            data if data is not None else sample_quotation_data(),
            generated_at=generated_at,
            preview=True,
        )

    async def generate_document(
        self,
        session: AsyncSession,
        *,
        template_id: int | None = None,
        template: TemplateBase | None = None,
        data: dict[str, Any] | None = None,
        output: Literal["pdf", "html"] = "pdf",
        options: PdfOptions | None = None,
        generated_at: datetime | None = None,
    ) -> str | PdfResult:
        """Render the print document as HTML, or as a PDF result with HTML fallback."""
        source = await self._resolve_source(session, template_id, template)
        html = self.render_html(
            source,
            data if data is not None else sample_quotation_data(),
            generated_at=generated_at,
        )
        if output == "html":
            return html

        if options is None:
            options = self.pdf_generator.default_options()
        result = await self.pdf_generator.generate(html, options)
        self._lazy.debug(
            lambda: f"generate_document: fallback={result.fallback}, size={result.size}, error={result.error}"
        )
        return result

    # Internals

    @asynccontextmanager
    async def _default_change(
        self,
        session: AsyncSession,
        template_id: int | None = None,
    ) -> AsyncIterator[None]:
        """Roll back on failure. Losing the single-default race is a 409."""
        try:
            yield
        except IntegrityError as exc:
            await session.rollback()
            raise ConflictException(
                detail="Another request changed the default template concurrently",
                type="default-template-conflict",
                extra={"template_id": template_id},
            ) from exc
        except Exception:
            await session.rollback()
            raise

    async def _make_default(self, session: AsyncSession, template: QuotationTemplate) -> None:
        await self.repository.clear_defaults(session)
        template.is_default = True
        await session.flush()

    async def _resolve_source(
        self,
        session: AsyncSession,
        template_id: int | None,
        template: TemplateBase | None,
    ) -> QuotationTemplate | dict[str, Any]:
        if template is not None:
            config = template.model_dump()
            config["elements"] = normalize_elements(config["elements"])
            return config
        if template_id is not None:
            return await self.get_template(session, template_id)

        default = await self.get_default(session)
        if default is None:
            raise NotFoundException(
                detail="No default template configured",
                type="default-template-not-found",
            )
        return default


_service: QuotationTemplateService | None = None


def get_template_service() -> QuotationTemplateService:
    """Get QuotationTemplateService singleton instance."""
    global _service
    if _service is None:
        _service = QuotationTemplateService()
    return _service
