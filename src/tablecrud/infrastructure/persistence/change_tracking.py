"""Startup initialisation of the change tracking tables.

Call ``init_change_tracking(engine)`` once while the application starts,
before any logged save runs. Repeated or concurrent calls for the same
engine create the tables only once.
"""

import asyncio
import weakref

from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncEngine

from tablecrud.core.logging import get_logger
from tablecrud.infrastructure.persistence.database import Base
from tablecrud.infrastructure.persistence.models import ColumnHistoryModel, RowVersionModel

logger = get_logger(__name__)

_initialized: "weakref.WeakSet[Engine]" = weakref.WeakSet()
_locks: "weakref.WeakKeyDictionary[Engine, asyncio.Lock]" = weakref.WeakKeyDictionary()


def is_change_tracking_initialized(engine: AsyncEngine) -> bool:
    return engine.sync_engine in _initialized


async def init_change_tracking(engine: AsyncEngine) -> None:
    """Create the column_history and row_version tables if they are missing.

    Args:
        engine: Engine the logged change trackers will write through.
    """
    key = engine.sync_engine
    if key in _initialized:
        return

    lock = _locks.setdefault(key, asyncio.Lock())
    async with lock:
        if key in _initialized:
            return
        tables = [ColumnHistoryModel.__table__, RowVersionModel.__table__]
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all, tables=tables)
        _initialized.add(key)
        logger.info(
            "Change tracking tables ready",
            tables=[t.name for t in tables],
        )
