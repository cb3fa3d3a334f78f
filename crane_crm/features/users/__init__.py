"""CRM users (read model for notification recipients)."""

from __future__ import annotations

from crane_crm.features.users.models import User
from crane_crm.features.users.repository import UserRepository, get_user_repository

__all__ = ["User", "UserRepository", "get_user_repository"]
