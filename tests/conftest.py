"""
conftest.py - Shared pytest fixtures for the microcredit service tests

Provides:
- An in-memory SQLite database with the schema created per test
- A file-backed database for tests that race independent sessions
- A session bound to it, one user per role and a funded pool
- An HTTP client on the application with the session dependency overridden
"""

import os

# Settings are read at import time
os.environ["DB_URL"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "test"

from decimal import Decimal

import httpx
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from components.core.database import Base, DatabaseManager
from components.core.init_db import get_db
from components.credit.repository import CreditRepository
from components.fund_pool.repository import FundPoolRepository
from components.user.models import UserRole
from components.user.repository import UserRepository
from components.user.schemas import UserCreate
from main import app

from tests.helpers import approval, credit_request

PASSWORD = "password123"


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database with every table created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_manager(engine):
    return DatabaseManager(engine)


@pytest_asyncio.fixture
async def session(db_manager):
    async with db_manager.get_db() as session:
        yield session


@pytest_asyncio.fixture
async def file_db(tmp_path):
    """Database in a file, so concurrent sessions use separate connections.

    Writers queue on the SQLite lock for up to ``timeout`` seconds instead of
    failing with "database is locked".
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'credits.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield DatabaseManager(engine)
    await engine.dispose()


# =============================================================================
# USER FIXTURES
# =============================================================================

async def _create_user(session, name: str, email: str, role: UserRole):
    return await UserRepository(session).create(
        UserCreate(name=name, email=email, password=PASSWORD, role=role)
    )


@pytest_asyncio.fixture
async def admin(session):
    return await _create_user(session, "Admin", "admin@example.com", UserRole.ADMINISTRATOR)


@pytest_asyncio.fixture
async def supervisor(session):
    return await _create_user(session, "Supervisor", "supervisor@example.com", UserRole.SUPERVISOR)


@pytest_asyncio.fixture
async def client_user(session):
    return await _create_user(session, "Awa Diallo", "awa@example.com", UserRole.CLIENT)


@pytest_asyncio.fixture
async def other_client(session):
    return await _create_user(session, "Moussa Traore", "moussa@example.com", UserRole.CLIENT)


# =============================================================================
# DOMAIN FIXTURES
# =============================================================================

@pytest_asyncio.fixture
async def funded_pool(session, admin):
    """Pool holding 1,000,000."""
    pool, _ = await FundPoolRepository(session).deposit(Decimal("1000000"), admin.id, "Initial capital")
    return pool


@pytest_asyncio.fixture
async def approved_credit(session, funded_pool, client_user, supervisor):
    """Credit of 100,000 approved against the funded pool."""
    repo = CreditRepository(session)
    credit = await repo.request(credit_request(client_user.id, "100000"))
    approved, _, _ = await repo.approve(credit.id, approval(), actor_id=supervisor.id)
    return approved


# =============================================================================
# HTTP FIXTURES
# =============================================================================

@pytest_asyncio.fixture
async def http(db_manager):
    """HTTP client on the application, sharing the test database."""
    async def override_get_db():
        async with db_manager.get_db() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
