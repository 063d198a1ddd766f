"""Pytest configuration for all tests."""

import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

os.environ.setdefault("TABLECRUD_ENVIRONMENT", "testing")

from tablecrud.core.config import get_settings  # noqa: E402
from tablecrud.core.context import clear_current_user  # noqa: E402
from tablecrud.domain.entities import UserContext  # noqa: E402
from tablecrud.infrastructure.persistence.change_tracking import init_change_tracking  # noqa: E402

from sample_records import TABLES  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_global_state():
    """Clear cached settings and the bound user between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    clear_current_user()


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with the sample tables and history tables."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        for ddl in TABLES:
            await conn.execute(text(ddl))

    await init_change_tracking(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def user() -> UserContext:
    return UserContext(name="adamo")
