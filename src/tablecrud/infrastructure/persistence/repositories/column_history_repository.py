"""Repository for append-only column history.

Only create and read operations are provided. Entries are never updated or
deleted, and on SQLite the table rejects both with triggers.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tablecrud.domain.entities.column_history import ColumnHistory
from tablecrud.infrastructure.persistence.models import ColumnHistoryModel


class ColumnHistoryRepository:
    """Repository for column history database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def create_batch(
        self, entries: list[ColumnHistoryModel]
    ) -> list[ColumnHistoryModel]:
        """Add history entries to the current transaction.

        Args:
            entries: Entries to write.

        Returns:
            The flushed entries with their generated ids.
        """
        if not entries:
            return []

        self.session.add_all(entries)
        await self.session.flush()
        return entries

    async def list_for_row(self, table_name: str, row_id: int) -> list[ColumnHistory]:
        """Get the history of one row, oldest version first.

        Args:
            table_name: Table of the row.
            row_id: Identity of the row.

        Returns:
            History entries ordered by version, then by write order.
        """
        result = await self.session.execute(
            select(ColumnHistoryModel)
            .where(
                ColumnHistoryModel.table_name == table_name,
                ColumnHistoryModel.row_id == row_id,
            )
            .order_by(ColumnHistoryModel.version, ColumnHistoryModel.id)
        )
        return [self._to_entity(model) for model in result.scalars().all()]

    @staticmethod
    def _to_entity(model: ColumnHistoryModel) -> ColumnHistory:
        return ColumnHistory(
            id=model.id,
            user_name=model.user_name,
            timestamp=model.timestamp,
            table_name=model.table_name,
            row_id=model.row_id,
            version=model.version,
            column_name=model.column_name,
            old_value=model.old_value,
            new_value=model.new_value,
        )
