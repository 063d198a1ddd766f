"""Repository for single-table CRUD on dataclass records.

Uses raw SQL generated from record metadata, since record classes are not
mapped to SQLAlchemy ORM models. The repository never commits; the caller
owns the transaction.
"""

from typing import Any, Callable, Iterable, Mapping, Optional, TypeVar, Union

from sqlalchemy.ext.asyncio import AsyncSession

from tablecrud.core.exceptions import (
    ConfigurationError,
    CrudError,
    IdentityReuseError,
    ValidationError,
)
from tablecrud.core.logging import get_logger
from tablecrud.domain.entities.table_metadata import SaveAction, TableMetadata
from tablecrud.domain.services.capabilities import PostLoad, Validatable
from tablecrud.domain.services.change_tracker import ChangeTracker
from tablecrud.domain.services.metadata_resolver import (
    build_params,
    get_column_value,
    hydrate,
    resolve,
)
from tablecrud.domain.services.value_converter import from_storage, to_storage
from tablecrud.infrastructure.persistence.dialects import SqlDialect, dialect_for_session
from tablecrud.infrastructure.persistence.sql_executor import execute, fetch_one, fetch_scalar
from tablecrud.infrastructure.persistence.statement_builder import ID_PARAM, StatementBuilder

logger = get_logger(__name__)

TRecord = TypeVar("TRecord")

OnSave = Callable[[Any, SaveAction], None]
Changes = Union[ChangeTracker, Iterable[str], None]


class CrudRepository:
    """Insert, update, merge, delete and fetch records by identity.

    Example:
        repo = CrudRepository(session)
        employee = Employee(FirstName="Wilbur", LastName="Wainright")
        new_id = await repo.save(employee)
        await session.commit()
    """

    def __init__(
        self,
        session: AsyncSession,
        identity_type: type = int,
        dialect: Optional[SqlDialect] = None,
    ) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
            identity_type: Type of record identities. Its default value
                (``identity_type()``) marks a record as new.
            dialect: Dialect for statement text; detected from the session's
                engine when omitted.
        """
        self.session = session
        self.identity_type = identity_type
        self._dialect = dialect

    @property
    def dialect(self) -> SqlDialect:
        if self._dialect is None:
            self._dialect = dialect_for_session(self.session)
        return self._dialect

    @property
    def builder(self) -> StatementBuilder:
        return StatementBuilder(self.dialect)

    # Identity

    def convert_identity(self, value: Any) -> Any:
        return from_storage(value, self.identity_type)

    def get_identity(self, record: Any) -> Any:
        metadata = resolve(type(record))
        metadata.require_identity()
        return getattr(record, metadata.identity_field)

    def is_new(self, record: Any) -> bool:
        """True when the record's identity is unset (None or the type's default)."""
        identity = self.get_identity(record)
        return identity is None or identity == self.identity_type()

    def _set_identity(self, record: Any, identity: Any) -> None:
        if not self.is_new(record):
            raise IdentityReuseError(
                f"Can't set the identity of {type(record).__name__} more than once "
                f"(current identity {self.get_identity(record)!r})"
            )
        metadata = resolve(type(record))
        setattr(record, metadata.identity_field, identity)

    # Queries

    async def _query_one(
        self, record_type: type[TRecord], sql: str, params: Mapping[str, Any]
    ) -> Optional[TRecord]:
        row = await fetch_one(self.session, sql, params, self.dialect)
        if row is None:
            return None
        return hydrate(record_type, row)

    async def _post_load(self, record: Any) -> None:
        if isinstance(record, PostLoad):
            await record.on_get(self.session)

    def _criteria_params(
        self, metadata: TableMetadata, criteria: Mapping[str, Any]
    ) -> dict[str, Any]:
        params = {}
        for name, value in criteria.items():
            if name in (metadata.identity_column, metadata.identity_field):
                params[metadata.require_identity()] = to_storage(value)
                continue
            mapping = metadata.find(name)
            if mapping is None:
                raise ConfigurationError(
                    f"'{name}' is not a mapped column of '{metadata.table_name}'"
                )
            params[mapping.column_name] = to_storage(value)
        return params

    async def get(self, record_type: type[TRecord], identity: Any) -> Optional[TRecord]:
        """Get a record by identity.

        Args:
            record_type: Record class to load.
            identity: Identity value.

        Returns:
            The record, or None if no row matches.
        """
        metadata = resolve(record_type)
        sql = self.builder.build_select_by_id(metadata)
        record = await self._query_one(record_type, sql, {ID_PARAM: to_storage(identity)})
        await self._post_load(record)
        return record

    async def get_where(
        self, record_type: type[TRecord], criteria: Mapping[str, Any]
    ) -> Optional[TRecord]:
        """Get the single record matching every criterion.

        Args:
            record_type: Record class to load.
            criteria: Column (or field) name to required value.

        Returns:
            The record, or None if no row matches.

        Raises:
            CrudError: If more than one row matches.
        """
        metadata = resolve(record_type)
        params = self._criteria_params(metadata, criteria)
        sql = self.builder.build_select_by_properties(metadata, params.keys())
        record = await self._query_one(record_type, sql, params)
        await self._post_load(record)
        return record

    async def exists(self, record_type: type, identity: Any) -> bool:
        return await self.get(record_type, identity) is not None

    async def exists_where(self, record_type: type, criteria: Mapping[str, Any]) -> bool:
        return await self.get_where(record_type, criteria) is not None

    # Writes

    async def _validate(self, record: Any) -> None:
        if not isinstance(record, Validatable):
            return
        for result in (record.validate(), await record.validate_async(self.session)):
            if not result.is_valid:
                logger.warning(
                    "Record validation failed",
                    record_type=type(record).__name__,
                    message=result.message,
                )
                raise ValidationError(result.message)

    async def insert(self, record: Any, on_save: Optional[OnSave] = None) -> Any:
        """Insert a record and assign its generated identity.

        Args:
            record: A new record.
            on_save: Called with ``(record, SaveAction.INSERT)`` after
                validation, just before the statement is built.

        Returns:
            The generated identity.

        Raises:
            IdentityReuseError: If the record already has an identity.
            ValidationError: If the record fails validation.
            CrudError: If the statement fails or returns no identity.
        """
        metadata = resolve(type(record))
        if not self.is_new(record):
            raise IdentityReuseError(
                f"{type(record).__name__} already has identity "
                f"{self.get_identity(record)!r} and cannot be inserted again"
            )

        await self._validate(record)
        if on_save is not None:
            on_save(record, SaveAction.INSERT)

        columns = metadata.columns_for(SaveAction.INSERT)
        sql = self.builder.build_insert(metadata, columns)
        params = build_params(record, columns)
        params.pop(metadata.identity_column, None)

        returned = await fetch_scalar(self.session, sql, params, self.dialect)
        if returned is None:
            raise CrudError(sql, params, message="Insert returned no identity")
        identity = self.convert_identity(returned)
        self._set_identity(record, identity)
        logger.info("Record inserted", table_name=metadata.table_name, identity=identity)
        return identity

    def _changed_columns(self, record: Any, changes: Changes) -> Optional[list[str]]:
        if changes is None:
            return None
        if isinstance(changes, ChangeTracker):
            if changes.instance is not record:
                raise ConfigurationError("Change tracker does not track this record")
            return changes.get_modified_columns(SaveAction.UPDATE)
        return list(changes)

    async def update(
        self,
        record: Any,
        changes: Changes = None,
        on_save: Optional[OnSave] = None,
    ) -> None:
        """Update an existing record.

        Args:
            record: A record with an identity.
            changes: A ChangeTracker or column names restricting the SET
                list; every update-eligible column when None.
            on_save: Called with ``(record, SaveAction.UPDATE)`` after
                validation, just before the statement is built.

        Raises:
            ValidationError: If the record fails validation.
            EmptyChangeSetError: If the change set is empty.
            CrudError: If the statement fails.
        """
        metadata = resolve(type(record))
        await self._validate(record)
        if on_save is not None:
            on_save(record, SaveAction.UPDATE)

        columns = self._changed_columns(record, changes)
        sql = self.builder.build_update(metadata, columns)
        params = build_params(record, columns)

        affected = await execute(self.session, sql, params, self.dialect)
        logger.info(
            "Record updated",
            table_name=metadata.table_name,
            identity=self.get_identity(record),
            columns=columns,
            rows_affected=affected,
        )

    async def save(
        self,
        record: Any,
        changes: Changes = None,
        on_save: Optional[OnSave] = None,
    ) -> Any:
        """Insert a new record or update an existing one.

        Returns:
            The record's identity, freshly assigned when it was inserted.
        """
        if self.is_new(record):
            return await self.insert(record, on_save)
        await self.update(record, changes, on_save)
        return self.get_identity(record)

    async def merge(
        self,
        record: Any,
        key_columns: Optional[Iterable[str]] = None,
        changes: Changes = None,
        on_save: Optional[OnSave] = None,
    ) -> Any:
        """Save a record, matching an existing row by natural key when new.

        Args:
            record: Record to save.
            key_columns: Columns identifying an existing row; the record's
                key columns when omitted.
            changes: Change set passed on to update.
            on_save: Save callback passed on to insert or update.

        Returns:
            The record's identity.

        Raises:
            ConfigurationError: If no key columns are given or declared.
        """
        metadata = resolve(type(record))
        if self.is_new(record):
            keys = list(key_columns) if key_columns is not None else metadata.key_columns
            if not keys:
                raise ConfigurationError(
                    f"No key columns found on {type(record).__name__} to merge by"
                )
            params = self._criteria_params(
                metadata, {key: get_column_value(record, key) for key in keys}
            )
            sql = self.builder.build_select_by_properties(metadata, params.keys())
            existing = await self._query_one(type(record), sql, params)
            if existing is not None:
                self._set_identity(record, self.get_identity(existing))
                logger.debug(
                    "Merge matched existing row",
                    table_name=metadata.table_name,
                    identity=self.get_identity(record),
                    key_columns=keys,
                )

        return await self.save(record, changes, on_save)

    async def delete(self, record_type: type, identity: Any) -> None:
        """Delete a record by identity.

        Raises:
            CrudError: If the statement fails.
        """
        metadata = resolve(record_type)
        sql = self.builder.build_delete(metadata)
        affected = await execute(
            self.session, sql, {ID_PARAM: to_storage(identity)}, self.dialect
        )
        logger.info(
            "Record deleted",
            table_name=metadata.table_name,
            identity=identity,
            rows_affected=affected,
        )
