"""Table metadata derived from a record class.

Metadata is computed once per record class and never mutated afterwards.
The identity column is never part of the saveable column list.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from tablecrud.core.exceptions import ConfigurationError


class SaveAction(str, Enum):
    """Statement kinds a column can take part in."""

    INSERT = "insert"
    UPDATE = "update"


class SaveEligibility(str, Enum):
    """Which save actions write a column."""

    BOTH = "both"
    INSERT_ONLY = "insert_only"
    UPDATE_ONLY = "update_only"
    EXCLUDED = "excluded"

    def allows(self, action: SaveAction) -> bool:
        if self is SaveEligibility.BOTH:
            return True
        if self is SaveEligibility.INSERT_ONLY:
            return action is SaveAction.INSERT
        if self is SaveEligibility.UPDATE_ONLY:
            return action is SaveAction.UPDATE
        return False


@dataclass(frozen=True)
class ColumnMapping:
    """Mapping between a record field and a table column.

    Attributes:
        field_name: Attribute name on the record class.
        column_name: Column name in the table (case-sensitive).
        eligibility: Save actions that write this column.
        python_type: Storage type with Optional unwrapped.
        is_key: Part of the natural/business key used by merge.
    """

    field_name: str
    column_name: str
    eligibility: SaveEligibility = SaveEligibility.BOTH
    python_type: Any = str
    is_key: bool = False

    def allows(self, action: SaveAction) -> bool:
        return self.eligibility.allows(action)


@dataclass(frozen=True)
class TableMetadata:
    """Everything the statement builder needs to know about a table.

    Attributes:
        table_name: Table name, optionally schema-qualified (``dbo.Employee``).
        identity_column: Identity column name, or None when none was found.
        identity_field: Record attribute holding the identity.
        identity_type: Python type of the identity attribute.
        columns: Mapped non-identity columns in declaration order.
        record_type: Record class this metadata describes, if any.
    """

    table_name: str
    identity_column: Optional[str] = None
    identity_field: Optional[str] = None
    identity_type: Any = int
    columns: tuple[ColumnMapping, ...] = ()
    record_type: Any = field(default=None, compare=False)

    def columns_for(self, action: SaveAction) -> list[str]:
        """Column names written by the given action, in declaration order."""
        return [c.column_name for c in self.columns if c.allows(action)]

    @property
    def key_columns(self) -> list[str]:
        return [c.column_name for c in self.columns if c.is_key]

    def find(self, name: str) -> Optional[ColumnMapping]:
        """Look up a column by column name, falling back to field name."""
        for mapping in self.columns:
            if mapping.column_name == name:
                return mapping
        for mapping in self.columns:
            if mapping.field_name == name:
                return mapping
        return None

    def require_identity(self) -> str:
        """Return the identity column or fail when the table has none."""
        if not self.identity_column:
            raise ConfigurationError(
                f"No identity column could be determined for table '{self.table_name}'"
            )
        return self.identity_column
