"""Database primitives: declarative base, mixins and generic repository."""

from __future__ import annotations

from .base import NAMING_CONVENTION, Base, IntegerPKMixin, JSONType, TimestampedBase, TimestampMixin
from .repository import BaseRepository

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "BaseRepository",
    "IntegerPKMixin",
    "JSONType",
    "TimestampMixin",
    "TimestampedBase",
]
