"""Snapshot-then-diff change tracking for records.

A tracker captures every mapped column value when it is created. At save
time it reports which columns now hold a different value, so UPDATE
statements and history entries only cover what actually changed.
"""

from typing import Any, Generic, TypeVar

from tablecrud.domain.entities.table_metadata import SaveAction, TableMetadata
from tablecrud.domain.services.metadata_resolver import resolve, snapshot_values

TRecord = TypeVar("TRecord")


class ChangeTracker(Generic[TRecord]):
    """Tracks modifications to a single record instance.

    Example:
        employee = await repo.get(Employee, 1)
        tracker = ChangeTracker(employee)
        employee.LastName = "Wainright2"
        tracker.get_modified_columns()  # ["LastName"]
        await repo.update(employee, tracker)
    """

    def __init__(self, instance: TRecord) -> None:
        self._instance = instance
        self._metadata = resolve(type(instance))
        self._snapshot = snapshot_values(instance)

    @property
    def instance(self) -> TRecord:
        return self._instance

    @property
    def metadata(self) -> TableMetadata:
        return self._metadata

    def __getitem__(self, column_name: str) -> Any:
        """Value the column held when the snapshot was taken."""
        return self._snapshot[column_name]

    def __contains__(self, column_name: object) -> bool:
        return column_name in self._snapshot

    def get_modified_columns(self, action: SaveAction = SaveAction.UPDATE) -> list[str]:
        """Columns written by ``action`` whose value differs from the snapshot.

        Comparison is by value, and the result follows declaration order.
        """
        current = snapshot_values(self._instance)
        return [
            mapping.column_name
            for mapping in self._metadata.columns
            if mapping.allows(action)
            and current[mapping.column_name] != self._snapshot[mapping.column_name]
        ]

    def get_changes(self, action: SaveAction = SaveAction.UPDATE) -> dict[str, tuple[Any, Any]]:
        """Change set: column name to (old value, new value)."""
        current = snapshot_values(self._instance)
        return {
            name: (self._snapshot[name], current[name])
            for name in self.get_modified_columns(action)
        }

    @property
    def has_changes(self) -> bool:
        return bool(self.get_modified_columns())

    def reset(self) -> None:
        """Take a fresh snapshot, e.g. after the changes were saved."""
        self._snapshot = snapshot_values(self._instance)
