"""Live table introspection.

Reads column definitions from the database through SQLAlchemy's inspector.
Introspection only reads catalog information and has no side effects.
"""

from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import Integer, inspect
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from tablecrud.core.exceptions import ConfigurationError
from tablecrud.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ColumnInfo:
    """Column definition as reported by the database."""

    name: str
    type_name: str
    nullable: bool = True
    is_identity: bool = False
    is_primary_key: bool = False


def _is_identity(column: dict[str, Any], primary_key: list[str]) -> bool:
    if column.get("identity"):
        return True
    if column.get("autoincrement") is True:
        return True
    default = column.get("default")
    if isinstance(default, str) and default.lower().startswith("nextval("):
        return True
    # SQLite: a lone INTEGER PRIMARY KEY is an alias for the rowid
    return (
        primary_key == [column["name"]]
        and isinstance(column.get("type"), Integer)
    )


class SchemaIntrospector:
    """Reads table column metadata from a live connection."""

    @classmethod
    async def get_columns(
        cls, session: AsyncSession, schema: Optional[str], table_name: str
    ) -> list[ColumnInfo]:
        """Get the ordered column list of a table.

        Args:
            session: SQLAlchemy async session.
            schema: Schema name, or None for the default schema.
            table_name: Table name.

        Returns:
            Columns in table order.

        Raises:
            ConfigurationError: If the table does not exist.
        """

        def _inspect(sync_session: Session) -> tuple[list[dict[str, Any]], list[str]]:
            inspector = inspect(sync_session.connection())
            if not inspector.has_table(table_name, schema=schema):
                return [], []
            columns = inspector.get_columns(table_name, schema=schema)
            pk = inspector.get_pk_constraint(table_name, schema=schema)
            return columns, list(pk.get("constrained_columns") or [])

        columns, primary_key = await session.run_sync(_inspect)
        if not columns:
            raise ConfigurationError(
                f"Table '{table_name}' was not found"
                + (f" in schema '{schema}'" if schema else "")
            )

        result = [
            ColumnInfo(
                name=col["name"],
                type_name=str(col["type"]),
                nullable=bool(col.get("nullable", True)),
                is_identity=_is_identity(col, primary_key),
                is_primary_key=col["name"] in primary_key,
            )
            for col in columns
        ]
        logger.debug(
            "Table introspected",
            schema=schema,
            table_name=table_name,
            column_count=len(result),
        )
        return result
