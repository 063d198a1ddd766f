"""Dictionary-backed insert/update commands.

A DynamicCommand is a mapping of column name to value for one table. It
writes rows without a record class, and it can carry raw SQL expressions
(``SqlExpression("CURRENT_TIMESTAMP")``) that are emitted into the
statement text instead of being bound.
"""

import uuid
from collections.abc import MutableMapping
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator, Mapping, Optional, Sequence, Union

from sqlalchemy.ext.asyncio import AsyncSession

from tablecrud.core.exceptions import ConfigurationError, CrudError, UnknownColumnError
from tablecrud.core.logging import get_logger
from tablecrud.domain.entities.table_metadata import (
    ColumnMapping,
    SaveAction,
    SaveEligibility,
    TableMetadata,
)
from tablecrud.domain.services.metadata_resolver import resolve
from tablecrud.domain.services.value_converter import from_storage, to_storage
from tablecrud.infrastructure.persistence.dialects import SqlDialect, dialect_for_session
from tablecrud.infrastructure.persistence.schema_introspector import (
    ColumnInfo,
    SchemaIntrospector,
)
from tablecrud.infrastructure.persistence.sql_executor import execute, fetch_scalar
from tablecrud.infrastructure.persistence.statement_builder import StatementBuilder

logger = get_logger(__name__)


@dataclass(frozen=True)
class SqlExpression:
    """Raw SQL emitted literally in place of a bound parameter.

    Never build one from untrusted input.
    """

    sql: str

    def __str__(self) -> str:
        return self.sql


CommandValue = Union[
    None, str, int, float, bool, Decimal, datetime, date, time, bytes, uuid.UUID, Enum, SqlExpression
]

_VALUE_TYPES = (str, int, float, bool, Decimal, datetime, date, time, bytes, uuid.UUID, Enum, SqlExpression)


class DynamicCommand(MutableMapping[str, Any]):
    """Column/value mapping that can insert or update a single row.

    Example:
        cmd = await DynamicCommand.from_table_schema(session, None, "Employee")
        cmd["FirstName"] = "Wilbur"
        cmd["Timestamp"] = SqlExpression("CURRENT_TIMESTAMP")
        new_id = await cmd.insert(session)
    """

    def __init__(
        self,
        table_name: str,
        identity_column: Optional[str] = "Id",
        *,
        columns: Optional[Sequence[ColumnInfo]] = None,
        eligibility: Optional[Mapping[str, SaveEligibility]] = None,
        identity_type: type = int,
        dialect: Optional[SqlDialect] = None,
    ) -> None:
        """Create a command for a table.

        Args:
            table_name: Table name, optionally schema-qualified.
            identity_column: Identity column name.
            columns: Known table columns in table order. When given,
                assigning any other column raises UnknownColumnError.
            eligibility: Save actions allowed per column, in column order.
                Columns not listed are written by both insert and update.
            identity_type: Type the generated identity is converted to.
            dialect: Dialect for statement text; resolved from the session
                at execution time when omitted.
        """
        self.table_name = table_name
        self.identity_column = identity_column
        self.identity_type = identity_type
        self.dialect = dialect
        self._columns = {c.name: c for c in columns} if columns is not None else None
        self._eligibility = dict(eligibility or {})
        self._values: dict[str, Any] = {}

    @classmethod
    async def from_table_schema(
        cls,
        session: AsyncSession,
        schema: Optional[str],
        table_name: str,
        identity_type: type = int,
        dialect: Optional[SqlDialect] = None,
    ) -> "DynamicCommand":
        """Create a command whose columns come from the live table definition."""
        columns = await SchemaIntrospector.get_columns(session, schema, table_name)
        identity = next((c.name for c in columns if c.is_identity), None)
        qualified = f"{schema}.{table_name}" if schema else table_name
        return cls(
            qualified,
            identity,
            columns=columns,
            identity_type=identity_type,
            dialect=dialect,
        )

    @classmethod
    def from_record(cls, record: Any, dialect: Optional[SqlDialect] = None) -> "DynamicCommand":
        """Create a command holding a record's writable column values.

        Read-only columns are left out. Insert-only and update-only columns
        keep their restriction, so each statement writes the same columns
        CrudRepository would.
        """
        metadata = resolve(type(record))
        writable = [m for m in metadata.columns if m.eligibility is not SaveEligibility.EXCLUDED]
        cmd = cls(
            metadata.table_name,
            metadata.identity_column,
            eligibility={m.column_name: m.eligibility for m in writable},
            identity_type=metadata.identity_type,
            dialect=dialect,
        )
        for mapping in writable:
            cmd[mapping.column_name] = getattr(record, mapping.field_name)
        return cmd

    # Mapping interface

    def __getitem__(self, column: str) -> Any:
        return self._values[column]

    def __setitem__(self, column: str, value: CommandValue) -> None:
        if self._columns is not None and column not in self._columns:
            raise UnknownColumnError(column, self.table_name)
        if column == self.identity_column:
            raise ConfigurationError(
                f"Identity column '{column}' of '{self.table_name}' cannot be assigned"
            )
        if value is not None and not isinstance(value, _VALUE_TYPES):
            raise TypeError(
                f"Unsupported value type {type(value).__name__} for column '{column}'"
            )
        self._values[column] = value

    def __delitem__(self, column: str) -> None:
        del self._values[column]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    # Statements

    def _column_order(self) -> list[str]:
        """Assigned columns in table order, then any others as assigned."""
        known = list(self._columns) if self._columns is not None else list(self._eligibility)
        ordered = [name for name in known if name in self._values]
        return ordered + [name for name in self._values if name not in ordered]

    @property
    def metadata(self) -> TableMetadata:
        """Metadata for the assigned columns, in table order."""
        return TableMetadata(
            table_name=self.table_name,
            identity_column=self.identity_column,
            identity_field=self.identity_column,
            identity_type=self.identity_type,
            columns=tuple(
                ColumnMapping(
                    field_name=name,
                    column_name=name,
                    eligibility=self._eligibility.get(name, SaveEligibility.BOTH),
                )
                for name in self._column_order()
            ),
        )

    @property
    def expressions(self) -> dict[str, str]:
        return {k: v.sql for k, v in self._values.items() if isinstance(v, SqlExpression)}

    @property
    def params(self) -> dict[str, Any]:
        """Bind parameters; SQL expressions are not bound."""
        return {
            k: to_storage(v) for k, v in self._values.items() if not isinstance(v, SqlExpression)
        }

    def _params_for(self, action: SaveAction) -> dict[str, Any]:
        columns = set(self.metadata.columns_for(action))
        return {k: v for k, v in self.params.items() if k in columns}

    def _builder(self, dialect: Optional[SqlDialect] = None) -> StatementBuilder:
        return StatementBuilder(dialect or self.dialect)

    def get_insert_statement(self, dialect: Optional[SqlDialect] = None) -> str:
        metadata = self.metadata
        return self._builder(dialect).build_insert(
            metadata,
            metadata.columns_for(SaveAction.INSERT),
            self.expressions,
        )

    def get_update_statement(self, dialect: Optional[SqlDialect] = None) -> str:
        return self._builder(dialect).build_update(self.metadata, None, self.expressions)

    async def insert(self, session: AsyncSession) -> Any:
        """Insert the row and return its generated identity.

        Tables without an identity column return None.

        Raises:
            CrudError: If the statement fails or returns no identity.
        """
        dialect = self.dialect or dialect_for_session(session)
        sql = self.get_insert_statement(dialect)
        params = self._params_for(SaveAction.INSERT)
        if not self.identity_column:
            await execute(session, sql, params, dialect)
            logger.info("Row inserted", table_name=self.table_name)
            return None
        identity = await fetch_scalar(session, sql, params, dialect)
        if identity is None:
            raise CrudError(sql, params, message="Insert returned no identity")
        result = from_storage(identity, self.identity_type)
        logger.info("Row inserted", table_name=self.table_name, identity=result)
        return result

    async def update(self, session: AsyncSession, identity: Any) -> int:
        """Update the row with the given identity.

        Returns:
            Number of rows affected.
        """
        dialect = self.dialect or dialect_for_session(session)
        sql = self.get_update_statement(dialect)
        params = {
            **self._params_for(SaveAction.UPDATE),
            self.metadata.require_identity(): to_storage(identity),
        }
        affected = await execute(session, sql, params, dialect)
        logger.info(
            "Row updated",
            table_name=self.table_name,
            identity=identity,
            rows_affected=affected,
        )
        return affected
