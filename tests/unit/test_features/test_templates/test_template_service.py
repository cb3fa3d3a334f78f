"""Tests for QuotationTemplateService against an in-memory database."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from crane_crm.core.exceptions import ConflictException, NotFoundException
from crane_crm.core.settings.pdf import PdfSettings
from crane_crm.features.templates.models import QuotationTemplate
from crane_crm.features.templates.schemas import TemplateBase, TemplateCreate, TemplateUpdate
from crane_crm.features.templates.service import QuotationTemplateService
from crane_crm.infra.pdf import PdfGenerator, PdfOptions
from crane_crm.infra.pdf import generator as pdf_generator_module

GENERATED_AT = datetime(2024, 1, 1, tzinfo=UTC)


@pytest.fixture
def pdf_generator() -> PdfGenerator:
    return PdfGenerator(PdfSettings(enabled=True))


@pytest.fixture
def service(pdf_generator: PdfGenerator) -> QuotationTemplateService:
    return QuotationTemplateService(pdf_generator=pdf_generator)


def _payload(name: str, **kwargs) -> TemplateCreate:
    elements = kwargs.pop(
        "elements",
        [
            {"id": "h", "type": "header", "content": {"title": "Quotation {{quotation.number}}"}},
            {"id": "t", "type": "items_table", "content": {}},
            {"id": "tot", "type": "totals", "content": {}},
        ],
    )
    return TemplateCreate(name=name, elements=elements, **kwargs)


async def _default_count(session) -> int:
    result = await session.execute(
        select(func.count()).select_from(QuotationTemplate).where(QuotationTemplate.is_default.is_(True))
    )
    return result.scalar_one()


class TestTemplateStore:
    async def test_create_and_get(self, db_session, service):
        created = await service.create_template(db_session, _payload("Standard", theme="classic"), created_by="u1")

        fetched = await service.get_template(db_session, created.id)
        assert fetched.name == "Standard"
        assert fetched.theme == "CLASSIC"
        assert fetched.version == 1
        assert fetched.is_active is True
        assert fetched.created_by == "u1"
        assert [e["id"] for e in fetched.elements] == ["h", "t", "tot"]

    async def test_get_missing_raises(self, db_session, service):
        with pytest.raises(NotFoundException) as exc_info:
            await service.get_template(db_session, 999)
        assert exc_info.value.type == "template-not-found"

    async def test_update_bumps_version(self, db_session, service):
        created = await service.create_template(db_session, _payload("Standard"))
        updated = await service.update_template(
            db_session,
            created.id,
            TemplateUpdate(name="Renamed", elements=[{"type": "footer"}]),
        )
        assert updated.name == "Renamed"
        assert updated.version == 2
        assert updated.elements[0]["id"].startswith("element_")

    async def test_delete_is_soft(self, db_session, service):
        created = await service.create_template(db_session, _payload("Standard", is_default=True))
        await service.delete_template(db_session, created.id)

        with pytest.raises(NotFoundException):
            await service.get_template(db_session, created.id)
        row = await service.get_template(db_session, created.id, include_inactive=True)
        assert row.is_active is False
        assert row.is_default is False
        assert await service.list_templates(db_session) == []

    async def test_duplicate(self, db_session, service):
        source = await service.create_template(db_session, _payload("Standard", is_default=True))
        await service.update_template(db_session, source.id, TemplateUpdate(description="v2"))

        copy = await service.duplicate_template(db_session, source.id)
        assert copy.id != source.id
        assert copy.name == "Standard (Copy)"
        assert copy.version == 1
        assert copy.is_default is False
        assert copy.elements == source.elements


class TestSingleDefault:
    async def test_create_as_default_replaces_previous(self, db_session, service):
        first = await service.create_template(db_session, _payload("A", is_default=True))
        second = await service.create_template(db_session, _payload("B", is_default=True))

        assert await _default_count(db_session) == 1
        default = await service.get_default(db_session)
        assert default.id == second.id
        await db_session.refresh(first)
        assert first.is_default is False

    async def test_set_default_moves_flag(self, db_session, service):
        first = await service.create_template(db_session, _payload("A", is_default=True))
        second = await service.create_template(db_session, _payload("B"))

        await service.set_default(db_session, second.id)
        assert await _default_count(db_session) == 1
        assert (await service.get_default(db_session)).id == second.id

        await service.set_default(db_session, first.id)
        assert await _default_count(db_session) == 1
        assert (await service.get_default(db_session)).id == first.id

    async def test_set_default_on_missing_changes_nothing(self, db_session, service):
        first = await service.create_template(db_session, _payload("A", is_default=True))
        first_id = first.id

        with pytest.raises(NotFoundException):
            await service.set_default(db_session, 999)
        assert (await service.get_default(db_session)).id == first_id

    async def test_set_default_race_is_a_conflict(self, db_session, service, monkeypatch):
        first = await service.create_template(db_session, _payload("A", is_default=True))
        second = await service.create_template(db_session, _payload("B"))
        first_id, second_id = first.id, second.id

        async def lose_race(session, template):
            raise IntegrityError("UPDATE quotation_templates", {}, Exception("duplicate key"))

        monkeypatch.setattr(service, "_make_default", lose_race)

        with pytest.raises(ConflictException) as exc_info:
            await service.set_default(db_session, second_id)
        assert exc_info.value.type == "default-template-conflict"
        assert (await service.get_default(db_session)).id == first_id

    async def test_create_and_update_as_default_race_is_a_conflict(self, db_session, service, monkeypatch):
        first = await service.create_template(db_session, _payload("A", is_default=True))
        second = await service.create_template(db_session, _payload("B"))
        first_id, second_id = first.id, second.id

        async def lose_race(session, template):
            raise IntegrityError("UPDATE quotation_templates", {}, Exception("duplicate key"))

        monkeypatch.setattr(service, "_make_default", lose_race)

        with pytest.raises(ConflictException) as created:
            await service.create_template(db_session, _payload("C", is_default=True))
        assert created.value.type == "default-template-conflict"

        with pytest.raises(ConflictException) as updated:
            await service.update_template(db_session, second_id, TemplateUpdate(name="B2", is_default=True))
        assert updated.value.type == "default-template-conflict"
        assert updated.value.extra == {"template_id": second_id}

        assert (await service.get_default(db_session)).id == first_id
        names = [t.name for t in await service.list_templates(db_session)]
        assert "C" not in names
        assert "B2" not in names

    async def test_list_puts_default_first(self, db_session, service):
        await service.create_template(db_session, _payload("A"))
        default = await service.create_template(db_session, _payload("B", is_default=True))
        await service.create_template(db_session, _payload("C"))

        items = await service.list_templates(db_session)
        assert items[0].id == default.id
        assert len(items) == 3


class TestDocumentGeneration:
    async def test_preview_uses_sample_data(self, db_session, service):
        await service.create_template(db_session, _payload("A", is_default=True))
        html = await service.preview(db_session, generated_at=GENERATED_AT)
        assert "QUO-2025-001" in html
        assert "Tower Crane Rental" in html

    async def test_preview_inline_template(self, db_session, service, quotation_context):
        inline = TemplateBase(name="Inline", elements=[{"type": "header", "content": {"title": "{{client.name}}"}}])
        html = await service.preview(db_session, template=inline, data=quotation_context, generated_at=GENERATED_AT)
        assert "<h1>Acme Infra</h1>" in html

    async def test_preview_without_default_raises(self, db_session, service):
        with pytest.raises(NotFoundException) as exc_info:
            await service.preview(db_session)
        assert exc_info.value.type == "default-template-not-found"

    async def test_html_output(self, db_session, service, quotation_context):
        template = await service.create_template(db_session, _payload("A"))
        html = await service.generate_document(
            db_session, template_id=template.id, data=quotation_context, output="html", generated_at=GENERATED_AT
        )
        assert isinstance(html, str)
        assert "Q-2024-01" in html and "₹200" in html

    async def test_pdf_falls_back_to_html_without_engine(self, db_session, service, quotation_context, monkeypatch):
        monkeypatch.setattr(pdf_generator_module, "_load_engine", lambda: None)
        template = await service.create_template(db_session, _payload("A"))

        result = await service.generate_document(db_session, template_id=template.id, data=quotation_context)

        assert result.fallback is True
        assert result.success is True
        assert result.content_type == "text/html"
        body = result.data.decode("utf-8")
        assert body.startswith("<!DOCTYPE html>")
        assert "@page" in body
        assert "Q-2024-01" in body

    async def test_pdf_render_error_falls_back(self, db_session, service, quotation_context, monkeypatch):
        monkeypatch.setattr(pdf_generator_module, "_load_engine", lambda: object())

        def explode(self, engine, html, options):
            raise RuntimeError("layout failed")

        monkeypatch.setattr(PdfGenerator, "_render_pdf", explode)
        template = await service.create_template(db_session, _payload("A"))

        result = await service.generate_document(db_session, template_id=template.id, data=quotation_context)
        assert result.fallback is True
        assert result.success is False
        assert result.error == "layout failed"

    async def test_pdf_success(self, db_session, service, quotation_context, monkeypatch):
        monkeypatch.setattr(pdf_generator_module, "_load_engine", lambda: object())
        monkeypatch.setattr(PdfGenerator, "_render_pdf", lambda self, engine, html, options: b"%PDF-1.7 test")
        template = await service.create_template(db_session, _payload("A"))

        result = await service.generate_document(
            db_session,
            template_id=template.id,
            data=quotation_context,
            options=PdfOptions(format="A5", quality="HIGH"),
        )
        assert result.fallback is False
        assert result.content_type == "application/pdf"
        assert result.data.startswith(b"%PDF")
        assert result.format == "A5"
