"""Table metadata resolution for record classes.

Record classes are plain mutable dataclasses. Each field can carry a
``column(...)`` descriptor that states its column name, whether it is the
identity or part of the natural key, and which save actions write it.
Metadata is resolved once per class and cached.

Example:
    @dataclass
    class Employee:
        __table_name__ = "dbo.Employee"

        FirstName: str = column(key=True, default="")
        LastName: str = column(key=True, default="")
        HireDate: date | None = None
        Created: datetime | None = column(save=SaveAction.INSERT, default=None)
        Notes: list[str] = column(mapped=False, default_factory=list)
        Id: int = 0
"""

import dataclasses
import types
import typing
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Mapping, Optional, Union

from tablecrud.core.exceptions import ConfigurationError
from tablecrud.domain.entities.table_metadata import (
    ColumnMapping,
    SaveAction,
    SaveEligibility,
    TableMetadata,
)
from tablecrud.domain.services.value_converter import (
    from_storage,
    is_supported_type,
    to_storage,
)

COLUMN_OPTIONS_KEY = "tablecrud"


@dataclass(frozen=True)
class ColumnOptions:
    """Per-field mapping options set through ``column()``."""

    name: Optional[str] = None
    identity: bool = False
    key: bool = False
    save: Optional[SaveAction] = None
    read_only: bool = False
    mapped: bool = True


def column(
    *,
    name: Optional[str] = None,
    identity: bool = False,
    key: bool = False,
    save: Optional[SaveAction] = None,
    read_only: bool = False,
    mapped: bool = True,
    **field_kwargs: Any,
) -> Any:
    """Declare a dataclass field with column mapping options.

    Args:
        name: Column name when it differs from the field name.
        identity: Field holds the table's generated identity.
        key: Field is part of the natural key used by merge.
        save: Restrict writes to a single save action.
        read_only: Column is loaded but never written.
        mapped: False excludes the field from the table entirely.
        **field_kwargs: Passed through to ``dataclasses.field``.
    """
    metadata = dict(field_kwargs.pop("metadata", None) or {})
    metadata[COLUMN_OPTIONS_KEY] = ColumnOptions(
        name=name,
        identity=identity,
        key=key,
        save=save,
        read_only=read_only,
        mapped=mapped,
    )
    return dataclasses.field(metadata=metadata, **field_kwargs)


def _options(f: dataclasses.Field) -> ColumnOptions:
    return f.metadata.get(COLUMN_OPTIONS_KEY) or ColumnOptions()


def unwrap_optional(hint: Any) -> Any:
    """Strip ``Optional``/``X | None`` from a type hint."""
    origin = typing.get_origin(hint)
    if origin is Union or origin is types.UnionType:
        args = [a for a in typing.get_args(hint) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return hint


def _eligibility(opts: ColumnOptions) -> SaveEligibility:
    if opts.read_only:
        return SaveEligibility.EXCLUDED
    if opts.save is SaveAction.INSERT:
        return SaveEligibility.INSERT_ONLY
    if opts.save is SaveAction.UPDATE:
        return SaveEligibility.UPDATE_ONLY
    return SaveEligibility.BOTH


def _find_identity_field(record_type: type, fields: list[dataclasses.Field]) -> Optional[dataclasses.Field]:
    marked = [f for f in fields if _options(f).identity]
    if len(marked) > 1:
        raise ConfigurationError(
            f"{record_type.__name__} marks more than one identity field: "
            + ", ".join(f.name for f in marked)
        )
    if marked:
        return marked[0]

    by_name = {f.name: f for f in fields}
    explicit = getattr(record_type, "__identity__", None)
    if explicit:
        if explicit not in by_name:
            raise ConfigurationError(
                f"{record_type.__name__}.__identity__ names unknown field '{explicit}'"
            )
        return by_name[explicit]

    for candidate in (f"{record_type.__name__}Id", "Id", "id"):
        if candidate in by_name:
            return by_name[candidate]
    return None


@lru_cache(maxsize=None)
def resolve(record_type: type) -> TableMetadata:
    """Derive table metadata from a record class.

    Args:
        record_type: A mutable dataclass.

    Returns:
        Immutable, cached table metadata.

    Raises:
        ConfigurationError: If the class is not a mutable dataclass or its
            identity declaration is ambiguous.
    """
    if not (isinstance(record_type, type) and dataclasses.is_dataclass(record_type)):
        raise ConfigurationError(f"{record_type!r} is not a dataclass record type")
    if record_type.__dataclass_params__.frozen:
        raise ConfigurationError(
            f"{record_type.__name__} is frozen; records must be writable"
        )

    hints = typing.get_type_hints(record_type)
    fields = list(dataclasses.fields(record_type))
    identity = _find_identity_field(record_type, fields)

    columns = []
    for f in fields:
        if identity is not None and f.name == identity.name:
            continue
        opts = _options(f)
        if not opts.mapped:
            continue
        storage_type = unwrap_optional(hints.get(f.name, Any))
        if not is_supported_type(storage_type):
            continue
        columns.append(
            ColumnMapping(
                field_name=f.name,
                column_name=opts.name or f.name,
                eligibility=_eligibility(opts),
                python_type=storage_type,
                is_key=opts.key,
            )
        )

    identity_column = None
    identity_type: Any = int
    if identity is not None:
        identity_column = _options(identity).name or identity.name
        identity_type = unwrap_optional(hints.get(identity.name, int))

    return TableMetadata(
        table_name=getattr(record_type, "__table_name__", None) or record_type.__name__,
        identity_column=identity_column,
        identity_field=identity.name if identity is not None else None,
        identity_type=identity_type,
        columns=tuple(columns),
        record_type=record_type,
    )


def get_identity_value(record: Any) -> Any:
    metadata = resolve(type(record))
    if metadata.identity_field is None:
        metadata.require_identity()
    return getattr(record, metadata.identity_field)


def get_column_value(record: Any, column_name: str) -> Any:
    """Read a record attribute by column (or field) name."""
    metadata = resolve(type(record))
    if column_name == metadata.identity_column and metadata.identity_field:
        return getattr(record, metadata.identity_field)
    mapping = metadata.find(column_name)
    if mapping is None:
        raise ConfigurationError(
            f"{type(record).__name__} has no mapped column '{column_name}'"
        )
    return getattr(record, mapping.field_name)


def snapshot_values(record: Any) -> dict[str, Any]:
    """Current value of every mapped column, keyed by column name."""
    metadata = resolve(type(record))
    return {m.column_name: getattr(record, m.field_name) for m in metadata.columns}


def build_params(record: Any, columns: Optional[list[str]] = None) -> dict[str, Any]:
    """Bind parameters for a record, keyed by column name.

    Always includes the identity so UPDATE statements can bind it.

    Args:
        record: Record instance.
        columns: Restrict to these columns; all mapped columns when None.
    """
    metadata = resolve(type(record))
    wanted = set(columns) if columns is not None else None
    params = {
        m.column_name: to_storage(getattr(record, m.field_name))
        for m in metadata.columns
        if wanted is None or m.column_name in wanted
    }
    if metadata.identity_column and metadata.identity_field:
        params[metadata.identity_column] = to_storage(
            getattr(record, metadata.identity_field)
        )
    return params


def hydrate(record_type: type, row: Mapping[str, Any]) -> Any:
    """Build a record from a result row.

    Columns the record does not map are ignored. Values are converted to
    the declared field types.
    """
    metadata = resolve(record_type)
    init_kwargs: dict[str, Any] = {}
    late: dict[str, Any] = {}
    init_fields = {f.name for f in dataclasses.fields(record_type) if f.init}

    def assign(field_name: str, value: Any) -> None:
        if field_name in init_fields:
            init_kwargs[field_name] = value
        else:
            late[field_name] = value

    for mapping in metadata.columns:
        if mapping.column_name in row:
            assign(mapping.field_name, from_storage(row[mapping.column_name], mapping.python_type))

    if metadata.identity_column in row and metadata.identity_field:
        assign(
            metadata.identity_field,
            from_storage(row[metadata.identity_column], metadata.identity_type),
        )

    record = record_type(**init_kwargs)
    for field_name, value in late.items():
        setattr(record, field_name, value)
    return record
