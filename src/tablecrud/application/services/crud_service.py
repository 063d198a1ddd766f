"""User-bound CRUD service.

Opens a session per call, commits on success and rolls back on any error.
When an update is given a LoggedChangeTracker, the row's UPDATE and its
column history commit in the same transaction.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Iterable, Mapping, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tablecrud.core.logging import get_logger
from tablecrud.domain.entities.user_context import UserContext
from tablecrud.domain.services.change_tracker import ChangeTracker
from tablecrud.infrastructure.persistence.dialects import SqlDialect
from tablecrud.infrastructure.persistence.logged_change_tracker import LoggedChangeTracker
from tablecrud.infrastructure.persistence.repositories.crud_repository import (
    Changes,
    CrudRepository,
    OnSave,
)

logger = get_logger(__name__)

TRecord = TypeVar("TRecord")


class CrudService:
    """Facade over CrudRepository for one acting user.

    Example:
        service = CrudService(db.session_factory, user=UserContext("adamo"))
        employee = await service.get(Employee, 1)
        tracker = LoggedChangeTracker(employee)
        employee.LastName = "Wainright2"
        await service.save(employee, tracker)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        user: Optional[UserContext] = None,
        identity_type: type = int,
        dialect: Optional[SqlDialect] = None,
    ) -> None:
        """Initialize the service.

        Args:
            session_factory: Factory for the sessions each call runs in.
            user: Acting user stamped on column history.
            identity_type: Identity type passed to the repository.
            dialect: Dialect override passed to the repository.
        """
        self.session_factory = session_factory
        self.user = user
        self.identity_type = identity_type
        self.dialect = dialect

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self.session_factory() as session:
            try:
                yield session
            except BaseException:
                await session.rollback()
                raise

    def _repository(self, session: AsyncSession) -> CrudRepository:
        return CrudRepository(session, self.identity_type, self.dialect)

    async def get(self, record_type: type[TRecord], identity: Any) -> Optional[TRecord]:
        async with self._session() as session:
            return await self._repository(session).get(record_type, identity)

    async def get_where(
        self, record_type: type[TRecord], criteria: Mapping[str, Any]
    ) -> Optional[TRecord]:
        async with self._session() as session:
            return await self._repository(session).get_where(record_type, criteria)

    async def exists(self, record_type: type, identity: Any) -> bool:
        async with self._session() as session:
            return await self._repository(session).exists(record_type, identity)

    async def exists_where(self, record_type: type, criteria: Mapping[str, Any]) -> bool:
        async with self._session() as session:
            return await self._repository(session).exists_where(record_type, criteria)

    async def _commit(
        self,
        session: AsyncSession,
        changes: Changes,
        was_update: bool,
    ) -> None:
        if was_update and isinstance(changes, LoggedChangeTracker):
            await changes.save(session, self.user)
            return
        await session.commit()
        if isinstance(changes, ChangeTracker):
            changes.reset()

    async def _update(
        self,
        session: AsyncSession,
        repo: CrudRepository,
        record: Any,
        changes: Changes,
        on_save: Optional[OnSave],
    ) -> Any:
        if isinstance(changes, ChangeTracker) and not changes.has_changes:
            logger.debug(
                "No modified columns, update skipped",
                record_type=type(record).__name__,
                identity=repo.get_identity(record),
            )
        else:
            await repo.update(record, changes, on_save)
        await self._commit(session, changes, was_update=True)
        return repo.get_identity(record)

    async def save(
        self,
        record: Any,
        changes: Changes = None,
        on_save: Optional[OnSave] = None,
    ) -> Any:
        """Insert or update a record and commit.

        An update whose tracker reports no modified columns sends no UPDATE.
        A LoggedChangeTracker still gets to decide whether the row version
        moves.

        Returns:
            The record's identity.
        """
        async with self._session() as session:
            repo = self._repository(session)
            if not repo.is_new(record):
                return await self._update(session, repo, record, changes, on_save)
            identity = await repo.insert(record, on_save)
            await self._commit(session, changes, was_update=False)
            return identity

    async def merge(
        self,
        record: Any,
        key_columns: Optional[Iterable[str]] = None,
        changes: Changes = None,
        on_save: Optional[OnSave] = None,
    ) -> Any:
        """Merge a record by natural key and commit.

        Records that already have an identity are saved like ``save`` does,
        including column history. A new record matched to an existing row
        is updated without history.

        Returns:
            The record's identity.
        """
        async with self._session() as session:
            repo = self._repository(session)
            if not repo.is_new(record):
                return await self._update(session, repo, record, changes, on_save)
            identity = await repo.merge(record, key_columns, changes, on_save)
            await self._commit(session, changes, was_update=False)
            return identity

    async def delete(self, record_type: type, identity: Any) -> None:
        async with self._session() as session:
            await self._repository(session).delete(record_type, identity)
            await session.commit()
