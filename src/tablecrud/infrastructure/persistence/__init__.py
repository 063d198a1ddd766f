"""Persistence layer: SQL generation, execution and change history."""

from tablecrud.infrastructure.persistence.change_tracking import (
    init_change_tracking,
    is_change_tracking_initialized,
)
from tablecrud.infrastructure.persistence.database import (
    Base,
    DatabaseManager,
    close_database,
    get_db_manager,
    init_database,
)
from tablecrud.infrastructure.persistence.dialects import (
    PostgresDialect,
    SqlDialect,
    SqliteDialect,
    SqlServerDialect,
    get_dialect,
)
from tablecrud.infrastructure.persistence.dynamic_command import DynamicCommand, SqlExpression
from tablecrud.infrastructure.persistence.logged_change_tracker import (
    LoggedChangeTracker,
    ValueKind,
)
from tablecrud.infrastructure.persistence.repositories import (
    ColumnHistoryRepository,
    CrudRepository,
    RowVersionRepository,
)
from tablecrud.infrastructure.persistence.schema_introspector import (
    ColumnInfo,
    SchemaIntrospector,
)
from tablecrud.infrastructure.persistence.sql_executor import row_exists
from tablecrud.infrastructure.persistence.statement_builder import StatementBuilder

__all__ = [
    "Base",
    "ColumnHistoryRepository",
    "ColumnInfo",
    "CrudRepository",
    "DatabaseManager",
    "DynamicCommand",
    "LoggedChangeTracker",
    "PostgresDialect",
    "RowVersionRepository",
    "SchemaIntrospector",
    "SqlDialect",
    "SqlExpression",
    "SqlServerDialect",
    "SqliteDialect",
    "StatementBuilder",
    "ValueKind",
    "close_database",
    "get_db_manager",
    "get_dialect",
    "init_change_tracking",
    "init_database",
    "is_change_tracking_initialized",
    "row_exists",
]
