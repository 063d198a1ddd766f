"""Conversion between record values and stored column values.

Raw SQL queries bypass driver-level type processing, so values read back
from SQLite in particular arrive as text or integers. These helpers bring
them back to the type declared on the record field.
"""

import typing
import uuid
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any

# Field types a record column may declare (Optional[...] of these is fine too)
SUPPORTED_TYPES: tuple[type, ...] = (
    str,
    int,
    float,
    bool,
    Decimal,
    datetime,
    date,
    time,
    bytes,
    uuid.UUID,
)


def is_supported_type(python_type: Any) -> bool:
    """Check whether a field type can be stored in a single column."""
    if not isinstance(python_type, type) or typing.get_origin(python_type) is not None:
        return False
    if issubclass(python_type, Enum):
        return True
    return python_type in SUPPORTED_TYPES


def to_storage(value: Any) -> Any:
    """Convert a record value into a bind parameter value.

    Enum members are stored by value; everything else passes through and
    the dialect adapts what its driver cannot bind.
    """
    if isinstance(value, Enum):
        return value.value
    return value


def from_storage(value: Any, python_type: Any) -> Any:
    """Convert a stored column value into the record field's type.

    Args:
        value: Value as returned by the driver.
        python_type: Declared field type, Optional already unwrapped.

    Returns:
        The converted value. Values that already have the target type are
        returned unchanged.
    """
    if value is None or not isinstance(python_type, type):
        return value

    if issubclass(python_type, Enum):
        if isinstance(value, python_type):
            return value
        try:
            return python_type(value)
        except ValueError:
            # Stored by member name
            return python_type[value]

    if python_type is bool:
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "t", "yes")
        return bool(value)

    if python_type is datetime:
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
        return datetime.fromisoformat(str(value))

    if python_type is date:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        return date.fromisoformat(str(value)[:10])

    if python_type is time:
        if isinstance(value, time):
            return value
        return time.fromisoformat(str(value))

    if python_type is Decimal:
        if isinstance(value, Decimal):
            return value
        return Decimal(str(value))

    if python_type is uuid.UUID:
        if isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(str(value))

    if python_type is int and not isinstance(value, int):
        return int(value)

    if python_type is float and not isinstance(value, float):
        return float(value)

    if python_type is bytes and not isinstance(value, bytes):
        return bytes(value)

    if python_type is str and not isinstance(value, str):
        return str(value)

    return value
