"""SQL statement builder for single-table CRUD.

Generates SELECT/INSERT/UPDATE/DELETE text from table metadata. Nothing
here touches a connection. Parameters are named after their column
(``:LastName``) and identifiers are delimited by the dialect.
"""

from typing import Iterable, Mapping, Optional, Sequence

from tablecrud.core.exceptions import ConfigurationError, EmptyChangeSetError
from tablecrud.core.logging import get_logger
from tablecrud.domain.entities.table_metadata import SaveAction, TableMetadata
from tablecrud.domain.services.capabilities import CustomSelect
from tablecrud.infrastructure.persistence.dialects import SqlDialect

logger = get_logger(__name__)

# Bind parameter used by select-by-id and delete statements
ID_PARAM = "id"


class StatementBuilder:
    """Builds parameterized statements for one dialect."""

    def __init__(self, dialect: Optional[SqlDialect] = None) -> None:
        self.dialect = dialect or SqlDialect()

    def delimit(self, name: str) -> str:
        return self.dialect.delimit(name)

    def _custom_select(self, metadata: TableMetadata) -> Optional[type[CustomSelect]]:
        record_type = metadata.record_type
        if isinstance(record_type, type) and issubclass(record_type, CustomSelect):
            return record_type
        return None

    def _select_from(self, metadata: TableMetadata) -> str:
        custom = self._custom_select(metadata)
        if custom is not None:
            return custom.select_from
        return f"SELECT * FROM {self.delimit(metadata.table_name)}"

    def _value_expression(self, column: str, expressions: Optional[Mapping[str, str]]) -> str:
        if expressions and column in expressions:
            return expressions[column]
        return f":{column}"

    def build_select_by_id(self, metadata: TableMetadata) -> str:
        """Build ``SELECT * FROM <table> WHERE <identity>=:id``.

        Record classes implementing CustomSelect supply both fragments.
        """
        custom = self._custom_select(metadata)
        if custom is not None:
            where_id = custom.where_id
        else:
            where_id = f"{self.delimit(metadata.require_identity())}=:{ID_PARAM}"
        sql = f"{self._select_from(metadata)} WHERE {where_id}"
        logger.debug("Built select-by-id statement", table_name=metadata.table_name, sql=sql)
        return sql

    def build_select_by_properties(
        self, metadata: TableMetadata, property_names: Iterable[str]
    ) -> str:
        """Build a SELECT whose WHERE clause ANDs ``<col>=:<col>`` for each name.

        Names are used in the order given.
        """
        names = list(property_names)
        if not names:
            raise ConfigurationError(
                f"At least one property is required to query '{metadata.table_name}'"
            )
        where = " AND ".join(f"{self.delimit(name)}=:{name}" for name in names)
        sql = f"{self._select_from(metadata)} WHERE {where}"
        logger.debug("Built select-where statement", table_name=metadata.table_name, sql=sql)
        return sql

    def build_insert(
        self,
        metadata: TableMetadata,
        columns: Optional[Sequence[str]] = None,
        expressions: Optional[Mapping[str, str]] = None,
    ) -> str:
        """Build an INSERT that reads back the generated identity.

        Args:
            metadata: Table metadata.
            columns: Columns to insert; insert-eligible columns by default.
            expressions: Raw SQL emitted in place of a column's parameter.

        Returns:
            The INSERT statement.
        """
        if columns is None:
            columns = metadata.columns_for(SaveAction.INSERT)

        table = self.delimit(metadata.table_name)
        identity = metadata.identity_column
        output = self.dialect.output_clause(identity) if identity else ""
        returning = self.dialect.returning_clause(identity) if identity else ""

        if columns:
            column_list = ", ".join(self.delimit(col) for col in columns)
            value_list = ", ".join(self._value_expression(col, expressions) for col in columns)
            sql = f"INSERT INTO {table} ({column_list}){output} VALUES ({value_list}){returning}"
        else:
            sql = f"INSERT INTO {table}{output} DEFAULT VALUES{returning}"

        logger.debug("Built insert statement", table_name=metadata.table_name, sql=sql)
        return sql

    def build_update(
        self,
        metadata: TableMetadata,
        columns: Optional[Iterable[str]] = None,
        expressions: Optional[Mapping[str, str]] = None,
    ) -> str:
        """Build an UPDATE keyed on the identity column.

        Args:
            metadata: Table metadata.
            columns: Changed columns. None means every update-eligible column.
                Given columns are emitted in metadata order.
            expressions: Raw SQL emitted in place of a column's parameter.

        Raises:
            EmptyChangeSetError: If there is no column to set.
            ConfigurationError: If a given column is not updatable, or the
                table has no identity column.
        """
        identity = metadata.require_identity()
        eligible = metadata.columns_for(SaveAction.UPDATE)

        if columns is None:
            set_columns = eligible
        else:
            requested = list(columns)
            unknown = [col for col in requested if col not in eligible]
            if unknown:
                raise ConfigurationError(
                    f"Columns not updatable on '{metadata.table_name}': {', '.join(unknown)}"
                )
            wanted = set(requested)
            set_columns = [col for col in eligible if col in wanted]

        if not set_columns:
            raise EmptyChangeSetError(
                f"No columns to update on '{metadata.table_name}'"
            )

        assignments = ", ".join(
            f"{self.delimit(col)}={self._value_expression(col, expressions)}"
            for col in set_columns
        )
        sql = (
            f"UPDATE {self.delimit(metadata.table_name)} SET {assignments} "
            f"WHERE {self.delimit(identity)}=:{identity}"
        )
        logger.debug("Built update statement", table_name=metadata.table_name, sql=sql)
        return sql

    def build_delete(self, metadata: TableMetadata) -> str:
        """Build ``DELETE FROM <table> WHERE <identity>=:id``."""
        identity = metadata.require_identity()
        sql = (
            f"DELETE FROM {self.delimit(metadata.table_name)} "
            f"WHERE {self.delimit(identity)}=:{ID_PARAM}"
        )
        logger.debug("Built delete statement", table_name=metadata.table_name, sql=sql)
        return sql
