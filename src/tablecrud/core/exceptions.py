"""Exceptions raised by the persistence engine and change tracker."""

from typing import Any


class TableCrudError(Exception):
    """Base class for all TableCrud errors."""
    pass


class ConfigurationError(TableCrudError):
    """Raised when record metadata cannot satisfy a structural requirement.

    Examples are a record type with no identity field, or a merge with no
    key fields to match on.
    """
    pass


class ValidationError(TableCrudError):
    """Raised when a record fails its own validation before a save."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class UnknownColumnError(TableCrudError, KeyError):
    """Raised when a dynamic command is given a column its table does not have."""

    def __init__(self, column: str, table_name: str):
        self.column = column
        self.table_name = table_name
        super().__init__(f"Column '{column}' does not exist in table '{table_name}'")

    def __str__(self) -> str:
        return self.args[0]


class IdentityReuseError(TableCrudError):
    """Raised when an identity is assigned to a record that already has one."""
    pass


class EmptyChangeSetError(TableCrudError):
    """Raised when an UPDATE is requested with an empty column list."""
    pass


class MissingUserContextError(TableCrudError):
    """Raised when change history is saved without an acting user."""
    pass


class CrudError(TableCrudError):
    """Raised when executing a generated statement fails.

    Carries the statement text and bound parameters alongside the original
    exception for diagnostics. ``cause`` is None when the statement ran but
    returned an unusable result, in which case ``message`` describes it.
    """

    def __init__(
        self,
        sql: str,
        params: dict[str, Any] | None,
        cause: BaseException | None = None,
        message: str | None = None,
    ):
        self.sql = sql
        self.params = dict(params or {})
        self.cause = cause
        detail = message or f"{type(cause).__name__}: {cause}"
        super().__init__(f"{detail}\nStatement: {sql}")
