"""Column history entity.

One entry per changed column per audited save. Entries are append-only.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class ColumnHistory:
    """A single column change in the history trail.

    Attributes:
        id: Unique identifier (auto-generated).
        user_name: Name of the user who saved the row.
        timestamp: User's local time when the save happened.
        table_name: Table the row belongs to.
        row_id: Identity of the changed row.
        version: Row version produced by the save.
        column_name: Column that changed.
        old_value: Display text of the value before the save.
        new_value: Display text of the value after the save.
    """

    id: int | None = None
    user_name: str = ""
    timestamp: datetime | None = None
    table_name: str = ""
    row_id: int = 0
    version: int = 0
    column_name: str = ""
    old_value: str = ""
    new_value: str = ""
