"""TableCrud - metadata-driven single-table CRUD with column history.

Maps dataclass records to relational tables without hand-written SQL and
records a versioned, column-level change history.
"""

__version__ = "0.1.0"

from tablecrud.application.services.crud_service import CrudService
from tablecrud.domain.entities import SaveAction, UserContext, ValidationResult
from tablecrud.domain.services import (
    ChangeTracker,
    CustomSelect,
    PostLoad,
    TextLookup,
    Validatable,
    column,
    resolve,
)
from tablecrud.infrastructure.persistence import (
    CrudRepository,
    DynamicCommand,
    LoggedChangeTracker,
    SqlExpression,
    StatementBuilder,
    init_change_tracking,
    row_exists,
)

__all__ = [
    "ChangeTracker",
    "CrudRepository",
    "CrudService",
    "CustomSelect",
    "DynamicCommand",
    "LoggedChangeTracker",
    "PostLoad",
    "SaveAction",
    "SqlExpression",
    "StatementBuilder",
    "TextLookup",
    "UserContext",
    "Validatable",
    "ValidationResult",
    "__version__",
    "column",
    "init_change_tracking",
    "resolve",
    "row_exists",
]
