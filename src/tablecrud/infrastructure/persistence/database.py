"""Database abstraction layer using SQLAlchemy 2.0 async.

This module provides the engine and session management used by the CRUD
repository and the change tracker. It supports SQLite (aiosqlite) and
PostgreSQL (asyncpg) drivers.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from tablecrud.core.config import Settings, get_settings
from tablecrud.core.logging import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for the change tracking models."""

    pass


class DatabaseManager:
    """Database connection and session manager.

    Owns the async engine and session factory. Sessions handed out by
    ``session()`` roll back on any exception.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def engine(self) -> AsyncEngine:
        """Get or create the database engine."""
        if self._engine is None:
            options = {"echo": self.settings.db_echo}
            if self.settings.is_sqlite:
                options["connect_args"] = {"check_same_thread": False}
            else:
                options.update(
                    pool_size=self.settings.db_pool_size,
                    max_overflow=self.settings.db_max_overflow,
                    pool_timeout=self.settings.db_pool_timeout,
                    pool_recycle=self.settings.db_pool_recycle,
                )
            self._engine = create_async_engine(self.settings.database_url, **options)
            logger.info(
                "Database engine created",
                database_url=self._engine.url.render_as_string(hide_password=True),
            )
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
            logger.debug("Database session factory created")
        return self._session_factory

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a session that is rolled back on error and always closed.

        Example:
            async with db.session() as session:
                repo = CrudRepository(session)
                employee = await repo.get(Employee, 1)
        """
        async with self.session_factory() as session:
            try:
                yield session
            except BaseException:
                await session.rollback()
                raise

    async def check_connection(self) -> bool:
        """Check if database connection is working."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
                logger.debug("Database connection check successful")
                return True
        except Exception as e:
            logger.error("Database connection check failed", error=str(e))
            return False

    async def disconnect(self) -> None:
        """Dispose the engine and all pooled connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database engine disposed")


_db_manager: DatabaseManager | None = None


def get_db_manager() -> DatabaseManager:
    """Get the global database manager instance."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


async def init_database(db: Optional[DatabaseManager] = None) -> DatabaseManager:
    """Initialize the database at application startup.

    Creates the SQLite directory if needed, verifies connectivity and, when
    change tracking is enabled, creates the history tables.

    Raises:
        RuntimeError: If the database cannot be reached.
    """
    from tablecrud.infrastructure.persistence.change_tracking import init_change_tracking

    db = db or get_db_manager()
    settings = db.settings

    if settings.is_sqlite and ":memory:" not in settings.database_url:
        db_file = Path(settings.database_url.split(":///")[-1])
        db_file.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Database directory created", path=str(db_file.parent))

    if not await db.check_connection():
        logger.error("Database connection failed")
        raise RuntimeError("Failed to connect to database")

    if settings.change_tracking_enabled:
        await init_change_tracking(db.engine)
    else:
        logger.info("Change tracking disabled, history tables not created")

    return db


async def close_database() -> None:
    """Close the global database manager. Call on application shutdown."""
    global _db_manager
    if _db_manager is not None:
        await _db_manager.disconnect()
        _db_manager = None
