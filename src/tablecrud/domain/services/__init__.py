"""Domain services for TableCrud.

Services here are pure: they work on record classes and values and have no
dependencies on a database connection.
"""

from tablecrud.domain.services.capabilities import (
    CustomSelect,
    PostLoad,
    TextLookup,
    Validatable,
)
from tablecrud.domain.services.change_tracker import ChangeTracker
from tablecrud.domain.services.metadata_resolver import (
    ColumnOptions,
    build_params,
    column,
    get_column_value,
    get_identity_value,
    hydrate,
    resolve,
    snapshot_values,
)
from tablecrud.domain.services.value_converter import (
    SUPPORTED_TYPES,
    from_storage,
    is_supported_type,
    to_storage,
)

__all__ = [
    "ChangeTracker",
    "ColumnOptions",
    "CustomSelect",
    "PostLoad",
    "SUPPORTED_TYPES",
    "TextLookup",
    "Validatable",
    "build_params",
    "column",
    "from_storage",
    "get_column_value",
    "get_identity_value",
    "hydrate",
    "is_supported_type",
    "resolve",
    "snapshot_values",
    "to_storage",
]
