"""Pytest configuration and shared fixtures.

Organization:
    - Environment: settings that keep tests off external infrastructure
    - Database Fixtures: in-memory SQLite engine, session factory and session
    - Application Fixtures: FastAPI app and HTTP client wired to the test database
    - Identity Fixtures: gateway headers for regular and admin users
    - Data Fixtures: users, templates and notification rows
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from fastapi import FastAPI
    from sqlalchemy.ext.asyncio import AsyncEngine

# Ensure tests run without external infrastructure
os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("DB_ENABLED", "false")
os.environ.setdefault("EMAIL_ENABLED", "false")
os.environ.setdefault("SMS_ENABLED", "false")
os.environ.setdefault("NOTIFY_SWEEP_ENABLED", "false")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("LOG_JSON", "false")


# ============================================================================
# Singleton / Cache Reset
# ============================================================================


@pytest.fixture(autouse=True)
def reset_singletons(monkeypatch: pytest.MonkeyPatch) -> None:
    """Give every test fresh settings, services, clients and repositories."""
    from crane_crm.core.settings import clear_all_caches
    from crane_crm.features.notifications import engine, repository, service
    from crane_crm.features.notifications.channels import dispatcher
    from crane_crm.features.templates import repository as template_repository
    from crane_crm.features.templates import service as template_service
    from crane_crm.features.users import repository as user_repository
    from crane_crm.infra.email import client as email_client
    from crane_crm.infra.pdf import generator
    from crane_crm.infra.realtime import manager
    from crane_crm.infra.sms import client as sms_client

    clear_all_caches()
    for module, attr in (
        (engine, "_engine"),
        (dispatcher, "_dispatcher"),
        (service, "_service"),
        (repository, "_rule_repository"),
        (repository, "_template_repository"),
        (repository, "_notification_repository"),
        (repository, "_log_repository"),
        (repository, "_scheduled_repository"),
        (repository, "_preference_repository"),
        (template_service, "_service"),
        (template_repository, "_template_repository"),
        (user_repository, "_user_repository"),
        (email_client, "_client"),
        (sms_client, "_client"),
        (generator, "_generator"),
        (manager, "_manager"),
    ):
        monkeypatch.setattr(module, attr, None)


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Async engine on a single shared in-memory SQLite connection, with all tables."""
    from crane_crm.core.database import Base
    from crane_crm.features.notifications import models as _notification_models  # noqa: F401
    from crane_crm.features.templates import models as _template_models  # noqa: F401
    from crane_crm.features.users import models as _user_models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Session for arranging and asserting database state."""
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()


# ============================================================================
# Application Fixtures
# ============================================================================


@pytest.fixture
def app(session_factory: async_sessionmaker[AsyncSession]) -> FastAPI:
    """FastAPI application whose request sessions use the test database.

    The lifespan is not run: ASGITransport does not send lifespan events.
    """
    from crane_crm.app.main import create_app
    from crane_crm.core.dependencies import get_db_session

    application = create_app()

    async def override_session() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_db_session] = override_session
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# ============================================================================
# Identity Fixtures
# ============================================================================


@pytest.fixture
def user_headers() -> dict[str, str]:
    return {"X-User-Id": "u1", "X-User-Role": "sales_agent"}


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-User-Id": "admin-1", "X-User-Role": "admin"}


# ============================================================================
# Data Fixtures
# ============================================================================


@pytest.fixture
async def users(db_session: AsyncSession) -> list[Any]:
    """One active user per role plus an inactive sales agent."""
    from crane_crm.features.users.models import User

    rows = [
        User(id="u1", email="a@b.com", phone="+919800000001", name="Asha", role="sales_agent"),
        User(id="admin-1", email="admin@aspcranes.com", name="Admin", role="admin"),
        User(id="op-1", email="op@aspcranes.com", phone="+919800000003", name="Ravi", role="operator"),
        User(id="ops-1", email="ops@aspcranes.com", name="Meera", role="operations_manager"),
        User(id="u-old", email="old@b.com", name="Former", role="sales_agent", is_active=False),
    ]
    db_session.add_all(rows)
    await db_session.commit()
    return rows


@pytest.fixture
def quotation_context() -> dict[str, Any]:
    """Small render context used across document tests."""
    return {
        "quotation": {"number": "Q-2024-01", "date": "01/01/2024"},
        "client": {"name": "Acme Infra"},
        "items": [
            {"description": "Crane A", "quantity": 1, "rate": "₹100", "amount": "₹100"},
            {"description": "Crane B", "quantity": 1, "rate": "₹100", "amount": "₹100"},
        ],
        "totals": {"subtotal": "₹200", "total": "₹200"},
    }
