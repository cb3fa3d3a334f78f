"""SQLAlchemy model for persisted quotation templates."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Boolean, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from crane_crm.core.database import JSONType, TimestampedBase


class QuotationTemplate(TimestampedBase):
    """A document layout: ordered typed elements plus theme and layout.

    At most one row may carry ``is_default = true``. The partial unique index
    enforces it at the storage layer; ``QuotationTemplateService.set_default``
    clears and sets the flag inside one transaction.
    """

    __tablename__ = "quotation_templates"
    __table_args__ = (
        Index(
            "uq_quotation_templates_single_default",
            "is_default",
            unique=True,
            postgresql_where=text("is_default"),
            sqlite_where=text("is_default = 1"),
        ),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text(), nullable=True)
    theme: Mapped[str] = mapped_column(String(50), nullable=False, default="MODERN")
    elements: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    styles: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    layout: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    settings: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    branding: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    is_default: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true"), index=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<QuotationTemplate(id={self.id}, name={self.name!r}, v{self.version})>"
