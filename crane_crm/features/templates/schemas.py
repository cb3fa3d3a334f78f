"""Pydantic schemas for the quotation templates feature."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from crane_crm.features.templates.themes import THEMES
from crane_crm.infra.pdf import PdfOptions


def _validate_theme(value: str | None) -> str | None:
    if value is None:
        return value
    key = value.upper()
    if key not in THEMES:
        msg = f"Unknown theme {value!r}; expected one of {', '.join(sorted(THEMES))}"
        raise ValueError(msg)
    return key


class TemplateBase(BaseModel):
    """Shared attributes for template payloads.

    ``elements`` keep the stored JSON shape: ``{id, type, content, style,
    visible, order?}``.
    """

    name: str = Field(..., min_length=1, max_length=255, description="Template name")
    description: str | None = Field(default=None, max_length=2000)
    theme: str = Field(default="MODERN", description="MODERN, CLASSIC, PROFESSIONAL or CREATIVE")
    elements: list[dict[str, Any]] = Field(default_factory=list)
    styles: dict[str, Any] = Field(default_factory=dict)
    layout: dict[str, Any] = Field(default_factory=dict)
    settings: dict[str, Any] = Field(default_factory=dict)
    branding: dict[str, Any] = Field(default_factory=dict)

    @field_validator("theme")
    @classmethod
    def validate_theme(cls, v: str) -> str:
        return _validate_theme(v) or "MODERN"


class TemplateCreate(TemplateBase):
    """Payload for creating a template."""

    is_default: bool = Field(default=False, description="Make this the default template")


class TemplateUpdate(BaseModel):
    """Partial update. Omitted fields are left unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    theme: str | None = None
    elements: list[dict[str, Any]] | None = None
    styles: dict[str, Any] | None = None
    layout: dict[str, Any] | None = None
    settings: dict[str, Any] | None = None
    branding: dict[str, Any] | None = None
    is_default: bool | None = None

    @field_validator("theme")
    @classmethod
    def validate_theme(cls, v: str | None) -> str | None:
        return _validate_theme(v)


class TemplateResponse(BaseModel):
    """Template as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None
    theme: str
    elements: list[dict[str, Any]]
    styles: dict[str, Any]
    layout: dict[str, Any]
    settings: dict[str, Any]
    branding: dict[str, Any]
    is_default: bool
    is_active: bool
    version: int
    created_by: str | None
    created_at: datetime
    updated_at: datetime


class TemplateListResponse(BaseModel):
    items: list[TemplateResponse]
    total: int


class TemplateDuplicateRequest(BaseModel):
    name: str | None = Field(
        default=None,
        min_length=1,
        max_length=255,
        description="Name of the copy. Defaults to '<original> (Copy)'.",
    )


class DocumentRequest(BaseModel):
    """Selects a template (stored or inline) and the data to render.

    With neither ``template_id`` nor ``template`` the default template is used.
    """

    template_id: int | None = Field(default=None, ge=1)
    template: TemplateBase | None = None
    data: dict[str, Any] | None = Field(
        default=None,
        description="Render context (company, client, quotation, items, totals)",
    )

    @model_validator(mode="after")
    def check_single_source(self) -> DocumentRequest:
        if self.template_id is not None and self.template is not None:
            msg = "Provide either template_id or template, not both"
            raise ValueError(msg)
        return self


class PreviewRequest(DocumentRequest):
    """Preview payload; sample data is used when ``data`` is omitted."""


class PrintRequest(DocumentRequest):
    """Print/export payload."""

    format: Literal["pdf", "html"] = Field(default="pdf")
    options: PdfOptions | None = None
