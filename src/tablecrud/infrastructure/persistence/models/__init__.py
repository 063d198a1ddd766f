"""SQLAlchemy models for the change tracking tables."""

from tablecrud.infrastructure.persistence.models.column_history import ColumnHistoryModel
from tablecrud.infrastructure.persistence.models.row_version import RowVersionModel

__all__ = [
    "ColumnHistoryModel",
    "RowVersionModel",
]
