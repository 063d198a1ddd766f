"""Change tracker that writes column history.

``LoggedChangeTracker.save`` increments the row's version and writes one
history entry per modified column, then commits. Everything already
pending on the session, usually the record's own UPDATE, commits or rolls
back together with the history.
"""

from enum import Enum
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tablecrud.core.config import get_settings
from tablecrud.core.context import get_current_user
from tablecrud.core.exceptions import ConfigurationError, MissingUserContextError
from tablecrud.core.logging import LoggingContext, get_logger
from tablecrud.domain.entities.table_metadata import ColumnMapping, SaveAction
from tablecrud.domain.entities.user_context import UserContext
from tablecrud.domain.services.capabilities import TextLookup
from tablecrud.domain.services.change_tracker import ChangeTracker, TRecord
from tablecrud.infrastructure.persistence.models import ColumnHistoryModel
from tablecrud.infrastructure.persistence.repositories.column_history_repository import (
    ColumnHistoryRepository,
)
from tablecrud.infrastructure.persistence.repositories.row_version_repository import (
    RowVersionRepository,
)

logger = get_logger(__name__)


class ValueKind(str, Enum):
    """How a column value is rendered into history text."""

    ENUM = "enum"
    LOOKUP = "lookup"
    RAW = "raw"


class LoggedChangeTracker(ChangeTracker[TRecord]):
    """Change tracker that persists a versioned history of modified columns.

    Example:
        employee = await repo.get(Employee, 1)
        tracker = LoggedChangeTracker(employee, user=UserContext("adamo"))
        employee.LastName = "Wainright2"
        await repo.update(employee, tracker)
        await tracker.save(session)  # commits the update and its history
    """

    def __init__(
        self,
        instance: TRecord,
        user: Optional[UserContext] = None,
        null_text: Optional[str] = None,
        version_empty_saves: Optional[bool] = None,
    ) -> None:
        """Snapshot a record for history logging.

        Args:
            instance: Record to track.
            user: Acting user. Falls back to the user bound with
                ``set_current_user`` at save time.
            null_text: Text written for missing values. Defaults to the
                ``history_null_text`` setting.
            version_empty_saves: Increment the row version even when nothing
                changed. Defaults to the ``history_version_empty_saves``
                setting.
        """
        super().__init__(instance)
        settings = get_settings()
        self._user = user
        self.null_text = null_text if null_text is not None else settings.history_null_text
        self.version_empty_saves = (
            version_empty_saves
            if version_empty_saves is not None
            else settings.history_version_empty_saves
        )

    def _resolve_user(self, user: Optional[UserContext]) -> UserContext:
        resolved = user or self._user or get_current_user()
        if resolved is None:
            raise MissingUserContextError(
                "Column history requires an acting user; pass one or call set_current_user()"
            )
        return resolved

    def _row_id(self) -> int:
        field_name = self.metadata.identity_field
        if field_name is None:
            self.metadata.require_identity()
        value = getattr(self.instance, field_name)
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Identity {value!r} of {type(self.instance).__name__} is not numeric; "
                "column history needs an integer row id"
            ) from e

    def value_kind(self, mapping: ColumnMapping) -> ValueKind:
        python_type = mapping.python_type
        if isinstance(python_type, type) and issubclass(python_type, Enum):
            return ValueKind.ENUM
        if isinstance(self.instance, TextLookup):
            lookups = self.instance.lookup_fields()
            if mapping.field_name in lookups:
                return ValueKind.LOOKUP
        return ValueKind.RAW

    async def render(
        self, session: AsyncSession, mapping: ColumnMapping, value: Any
    ) -> str:
        """Render a column value as history text.

        Enum members render by name, lookup columns through the record's
        ``get_text_from_key`` on the same session, everything else with
        ``str()``. Missing values render as ``null_text``.
        """
        if value is None:
            return self.null_text

        kind = self.value_kind(mapping)
        if kind is ValueKind.ENUM:
            text = value.name if isinstance(value, Enum) else str(value)
        elif kind is ValueKind.LOOKUP:
            text = await self.instance.get_text_from_key(session, mapping.field_name, value)
        else:
            text = str(value)
        return text if text is not None else self.null_text

    async def _build_entries(
        self,
        session: AsyncSession,
        user: UserContext,
        row_id: int,
        version: int,
        changes: dict[str, tuple[Any, Any]],
    ) -> list[ColumnHistoryModel]:
        timestamp = user.local_time
        entries = []
        for column_name, (old, new) in changes.items():
            mapping = self.metadata.find(column_name)
            entries.append(
                ColumnHistoryModel(
                    user_name=user.name,
                    timestamp=timestamp,
                    table_name=self.metadata.table_name,
                    row_id=row_id,
                    version=version,
                    column_name=column_name,
                    old_value=await self.render(session, mapping, old),
                    new_value=await self.render(session, mapping, new),
                )
            )
        return entries

    async def _write(
        self,
        session: AsyncSession,
        user: Optional[UserContext],
        changes: dict[str, tuple[Any, Any]],
    ) -> int:
        acting_user = self._resolve_user(user)
        row_id = self._row_id()
        table_name = self.metadata.table_name
        versions = RowVersionRepository(session)

        with LoggingContext(user_name=acting_user.name, row_id=row_id):
            if not changes and not self.version_empty_saves:
                version = await versions.get_version(table_name, row_id)
                logger.debug("No modified columns, row version unchanged", version=version)
            else:
                version = await versions.increment(table_name, row_id)
                entries = await self._build_entries(
                    session, acting_user, row_id, version, changes
                )
                await ColumnHistoryRepository(session).create_batch(entries)
            await session.commit()
            logger.info("Column history saved", version=version, columns=list(changes))
        return version

    async def save(self, session: AsyncSession, user: Optional[UserContext] = None) -> int:
        """Write the history of the tracked record and commit.

        Every failure, including a missing user or a non-numeric identity,
        rolls the session back before the error propagates.

        Args:
            session: Session holding the record's pending UPDATE, if any.
            user: Acting user, overriding the tracker's and the context's.

        Returns:
            The row version after the save.

        Raises:
            MissingUserContextError: If no acting user is available.
            ConfigurationError: If the record has no integer identity.
        """
        changes = self.get_changes(SaveAction.UPDATE)

        with LoggingContext(table_name=self.metadata.table_name):
            try:
                version = await self._write(session, user, changes)
            except BaseException:
                await session.rollback()
                logger.warning("Column history save rolled back")
                raise

        self.reset()
        return version
