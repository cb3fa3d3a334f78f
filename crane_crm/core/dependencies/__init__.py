"""Shared FastAPI dependencies."""

from __future__ import annotations

from .auth import CurrentUser, CurrentUserDep, get_current_user, require_roles
from .database import SessionDep, get_db_session

__all__ = [
    "CurrentUser",
    "CurrentUserDep",
    "SessionDep",
    "get_current_user",
    "get_db_session",
    "require_roles",
]
