"""Repository for per-row version counters."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tablecrud.core.logging import get_logger
from tablecrud.infrastructure.persistence.models import RowVersionModel

logger = get_logger(__name__)


class RowVersionRepository:
    """Reads and increments row versions.

    Increments are read-modify-write inside the caller's transaction. The
    model's version counter makes the UPDATE conditional on the version
    that was read, so a concurrent increment fails with ``StaleDataError``
    instead of being lost.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def get(self, table_name: str, row_id: int) -> RowVersionModel | None:
        result = await self.session.execute(
            select(RowVersionModel).where(
                RowVersionModel.table_name == table_name,
                RowVersionModel.row_id == row_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_version(self, table_name: str, row_id: int) -> int:
        """Get the current version of a row, 0 if it was never saved with history."""
        row_version = await self.get(table_name, row_id)
        return row_version.version if row_version is not None else 0

    async def increment(self, table_name: str, row_id: int) -> int:
        """Increment a row's version, creating it on first write.

        Args:
            table_name: Table of the row.
            row_id: Identity of the row.

        Returns:
            The new version number.
        """
        row_version = await self.get(table_name, row_id)
        if row_version is None:
            row_version = RowVersionModel(table_name=table_name, row_id=row_id, version=1)
            self.session.add(row_version)
        else:
            row_version.version = row_version.version + 1

        await self.session.flush()
        logger.debug(
            "Row version incremented",
            table_name=table_name,
            row_id=row_id,
            version=row_version.version,
        )
        return row_version.version
