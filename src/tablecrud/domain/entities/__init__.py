"""Domain entities for TableCrud."""

from tablecrud.domain.entities.column_history import ColumnHistory
from tablecrud.domain.entities.table_metadata import (
    ColumnMapping,
    SaveAction,
    SaveEligibility,
    TableMetadata,
)
from tablecrud.domain.entities.user_context import UserContext
from tablecrud.domain.entities.validation import ValidationResult

__all__ = [
    "ColumnHistory",
    "ColumnMapping",
    "SaveAction",
    "SaveEligibility",
    "TableMetadata",
    "UserContext",
    "ValidationResult",
]
