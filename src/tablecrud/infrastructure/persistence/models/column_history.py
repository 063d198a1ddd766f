"""SQLAlchemy model for the column_history table.

One row per changed column per audited save. Entries are append-only.
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Index, Integer, String, Text, event, text
from sqlalchemy.orm import Mapped, mapped_column

from tablecrud.infrastructure.persistence.database import Base


class ColumnHistoryModel(Base):
    """SQLAlchemy model for the column_history table.

    Attributes:
        id: Primary key (auto-incrementing).
        user_name: Name of the user who saved the row.
        timestamp: User's local time of the save.
        table_name: Table of the changed row.
        row_id: Identity of the changed row.
        version: Row version produced by the save.
        column_name: Column that changed.
        old_value: Display text before the save.
        new_value: Display text after the save.
    """

    __tablename__ = "column_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    table_name: Mapped[str] = mapped_column(String(255), nullable=False)
    row_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    column_name: Mapped[str] = mapped_column(String(255), nullable=False)
    old_value: Mapped[str] = mapped_column(Text, nullable=False)
    new_value: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        Index("ix_column_history_table_row", "table_name", "row_id", "version"),
    )

    def __repr__(self) -> str:
        return (
            f"<ColumnHistory(id={self.id}, table={self.table_name}, "
            f"row={self.row_id}, version={self.version}, column={self.column_name})>"
        )


@event.listens_for(ColumnHistoryModel.__table__, "after_create")
def create_immutability_triggers(target, connection, **kw):
    """Reject UPDATE and DELETE on column_history at the database level."""
    if connection.dialect.name == "sqlite":
        connection.execute(
            text(
                """
                CREATE TRIGGER IF NOT EXISTS prevent_column_history_update
                BEFORE UPDATE ON column_history
                BEGIN
                    SELECT RAISE(ABORT, 'Column history entries are immutable and cannot be updated');
                END;
                """
            )
        )
        connection.execute(
            text(
                """
                CREATE TRIGGER IF NOT EXISTS prevent_column_history_delete
                BEFORE DELETE ON column_history
                BEGIN
                    SELECT RAISE(ABORT, 'Column history entries are immutable and cannot be deleted');
                END;
                """
            )
        )
