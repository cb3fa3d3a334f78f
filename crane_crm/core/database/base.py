"""Declarative base and column mixins for SQLAlchemy models.

Examples:
    class QuotationTemplate(Base, IntegerPKMixin, TimestampMixin):
        __tablename__ = "quotation_templates"
        name: Mapped[str] = mapped_column(String(255))
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import JSON, DateTime, MetaData
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column
from sqlalchemy.sql import func

# Predictable constraint names for migrations
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# JSONB on PostgreSQL, plain JSON on SQLite
JSONType = JSONB().with_variant(JSON(), "sqlite")


class Base(DeclarativeBase):
    """Declarative base with constraint naming convention."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    @declared_attr.directive
    def __tablename__(cls) -> str:
        return cls.__name__.lower()


class IntegerPKMixin:
    """Integer auto-increment primary key."""

    __allow_unmapped__ = True

    id: Mapped[int] = mapped_column(
        primary_key=True,
        autoincrement=True,
        comment="Auto-incrementing integer primary key",
    )


class TimestampMixin:
    """created_at / updated_at tracking.

    Uses both Python-side defaults (for test environments) and database
    server defaults (for direct SQL inserts).
    """

    __allow_unmapped__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
        nullable=False,
        comment="Timestamp of record creation",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
        comment="Timestamp of last update",
    )


class TimestampedBase(Base, IntegerPKMixin, TimestampMixin):
    """Abstract base: integer id plus timestamps."""

    __abstract__ = True
