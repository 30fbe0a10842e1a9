"""Database initialization and dependency injection."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import fastapi
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.config import get_settings
from components.core.database import DatabaseManager
# Import all models to ensure they're registered
import components.user.models
import components.credit.models
import components.payment.models
import components.fund_pool.models

logger = logging.getLogger(__name__)
settings = get_settings()

# Create a single instance of DatabaseManager
db_manager = DatabaseManager()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for getting database sessions."""
    async with db_manager.get_db() as session:
        yield session


@asynccontextmanager
async def lifespan(app: fastapi.FastAPI):
    """Create tables on startup in development; other environments use migrations."""
    if settings.ENVIRONMENT == "development":
        await db_manager.create_tables()
        logger.info("Database tables ensured")
    yield
    await db_manager.engine.dispose()
