"""Persistence repositories for database operations."""

from tablecrud.infrastructure.persistence.repositories.column_history_repository import (
    ColumnHistoryRepository,
)
from tablecrud.infrastructure.persistence.repositories.crud_repository import (
    CrudRepository,
)
from tablecrud.infrastructure.persistence.repositories.row_version_repository import (
    RowVersionRepository,
)

__all__ = [
    "ColumnHistoryRepository",
    "CrudRepository",
    "RowVersionRepository",
]
