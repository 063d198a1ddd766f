"""LoggedChangeTracker against an in-memory SQLite database."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select, text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm.exc import StaleDataError

from tablecrud.core.context import set_current_user
from tablecrud.core.exceptions import MissingUserContextError
from tablecrud.infrastructure.persistence.change_tracking import (
    init_change_tracking,
    is_change_tracking_initialized,
)
from tablecrud.infrastructure.persistence.logged_change_tracker import LoggedChangeTracker
from tablecrud.infrastructure.persistence.models import ColumnHistoryModel
from tablecrud.infrastructure.persistence.repositories import (
    ColumnHistoryRepository,
    CrudRepository,
    RowVersionRepository,
)

from sample_records import Department, Employee, EmployeeStatus


async def _saved_employee(session: AsyncSession) -> Employee:
    repo = CrudRepository(session)
    employee = Employee(FirstName="Wilbur", LastName="Wainright")
    await repo.save(employee)
    await session.commit()
    return employee


@pytest.mark.asyncio
async def test_n_saves_produce_version_n(db_session, user):
    repo = CrudRepository(db_session)
    employee = await _saved_employee(db_session)

    for n in range(1, 4):
        tracker = LoggedChangeTracker(employee, user=user)
        employee.LastName = f"Wainright{n}"
        await repo.update(employee, tracker)
        assert await tracker.save(db_session) == n

    versions = RowVersionRepository(db_session)
    assert await versions.get_version("Employee", employee.Id) == 3

    result = await db_session.execute(
        select(func.count(func.distinct(ColumnHistoryModel.version))).where(
            ColumnHistoryModel.table_name == "Employee",
            ColumnHistoryModel.row_id == employee.Id,
        )
    )
    assert result.scalar() == 3


@pytest.mark.asyncio
async def test_history_entry_per_modified_column(db_session, user):
    repo = CrudRepository(db_session)
    employee = await _saved_employee(db_session)

    tracker = LoggedChangeTracker(employee, user=user)
    employee.FirstName = "Orville"
    employee.LastName = "Wright"
    await repo.update(employee, tracker)
    await tracker.save(db_session)

    history = await ColumnHistoryRepository(db_session).list_for_row("Employee", employee.Id)

    assert [(h.column_name, h.old_value, h.new_value) for h in history] == [
        ("FirstName", "Wilbur", "Orville"),
        ("LastName", "Wainright", "Wright"),
    ]
    assert {h.version for h in history} == {1}
    assert {h.user_name for h in history} == {"adamo"}
    assert all(h.timestamp is not None for h in history)


@pytest.mark.asyncio
async def test_enum_and_lookup_rendering(db_session, user):
    repo = CrudRepository(db_session)
    engineering = Department(Name="Engineering")
    sales = Department(Name="Sales")
    await repo.save(engineering)
    await repo.save(sales)
    employee = Employee(FirstName="Wilbur", LastName="Wainright", DepartmentId=engineering.Id)
    await repo.save(employee)
    await db_session.commit()

    tracker = LoggedChangeTracker(employee, user=user)
    employee.Status = EmployeeStatus.TERMINATED
    employee.DepartmentId = sales.Id
    await repo.update(employee, tracker.get_modified_columns())
    await tracker.save(db_session)

    history = await ColumnHistoryRepository(db_session).list_for_row("Employee", employee.Id)
    rendered = {h.column_name: (h.old_value, h.new_value) for h in history}

    assert rendered == {
        "Status": ("ACTIVE", "TERMINATED"),
        "DepartmentId": ("Engineering", "Sales"),
    }


@pytest.mark.asyncio
async def test_null_values_use_placeholder(db_session, user):
    repo = CrudRepository(db_session)
    employee = Employee(FirstName="Wilbur", LastName="Wainright", HireDate=date(2019, 6, 3))
    await repo.save(employee)
    await db_session.commit()

    tracker = LoggedChangeTracker(employee, user=user, null_text="(empty)")
    employee.HireDate = None
    employee.IsExempt = True
    employee.Salary = Decimal("100.00")
    await repo.update(employee, tracker)
    await tracker.save(db_session)

    history = await ColumnHistoryRepository(db_session).list_for_row("Employee", employee.Id)
    assert [(h.column_name, h.old_value, h.new_value) for h in history] == [
        ("HireDate", "2019-06-03", "(empty)"),
        ("IsExempt", "False", "True"),
        ("Salary", "(empty)", "100.00"),
    ]


@pytest.mark.asyncio
async def test_missing_user_discards_pending_update(db_session):
    repo = CrudRepository(db_session)
    employee = await _saved_employee(db_session)

    tracker = LoggedChangeTracker(employee)
    employee.LastName = "Wainright2"
    await repo.update(employee, tracker)

    with pytest.raises(MissingUserContextError):
        await tracker.save(db_session)

    assert db_session.in_transaction() is False
    stored = await CrudRepository(db_session).get(Employee, employee.Id)
    assert stored.LastName == "Wainright"
    assert await RowVersionRepository(db_session).get_version("Employee", employee.Id) == 0


@pytest.mark.asyncio
async def test_failure_rolls_back_update_version_and_history(db_session, user, monkeypatch):
    repo = CrudRepository(db_session)
    employee = await _saved_employee(db_session)

    async def broken_lookup(session, field_name, key):
        raise RuntimeError("lookup failed")

    tracker = LoggedChangeTracker(employee, user=user)
    employee.LastName = "Wainright2"
    employee.DepartmentId = 1
    monkeypatch.setattr(employee, "get_text_from_key", broken_lookup)
    await repo.update(employee, tracker)

    with pytest.raises(RuntimeError, match="lookup failed"):
        await tracker.save(db_session)

    assert await RowVersionRepository(db_session).get_version("Employee", employee.Id) == 0
    assert await ColumnHistoryRepository(db_session).list_for_row("Employee", employee.Id) == []
    stored = await CrudRepository(db_session).get(Employee, employee.Id)
    assert stored.LastName == "Wainright"
    assert tracker.has_changes is True


@pytest.mark.asyncio
async def test_empty_change_set_is_a_no_op_by_default(db_session, user):
    employee = await _saved_employee(db_session)
    tracker = LoggedChangeTracker(employee, user=user)

    assert await tracker.save(db_session) == 0
    assert await RowVersionRepository(db_session).get("Employee", employee.Id) is None


@pytest.mark.asyncio
async def test_empty_change_set_can_still_increment(db_session, user):
    employee = await _saved_employee(db_session)
    tracker = LoggedChangeTracker(employee, user=user, version_empty_saves=True)

    assert await tracker.save(db_session) == 1
    assert await tracker.save(db_session) == 2
    assert await ColumnHistoryRepository(db_session).list_for_row("Employee", employee.Id) == []


@pytest.mark.asyncio
async def test_user_from_context(db_session, user):
    repo = CrudRepository(db_session)
    employee = await _saved_employee(db_session)
    set_current_user(user)

    tracker = LoggedChangeTracker(employee)
    employee.FirstName = "Orville"
    await repo.update(employee, tracker)
    await tracker.save(db_session)

    history = await ColumnHistoryRepository(db_session).list_for_row("Employee", employee.Id)
    assert history[0].user_name == "adamo"


@pytest.mark.asyncio
async def test_tracker_resets_after_save(db_session, user):
    repo = CrudRepository(db_session)
    employee = await _saved_employee(db_session)
    tracker = LoggedChangeTracker(employee, user=user)

    employee.FirstName = "Orville"
    await repo.update(employee, tracker)
    await tracker.save(db_session)
    assert tracker.has_changes is False

    employee.LastName = "Wright"
    await repo.update(employee, tracker)
    assert await tracker.save(db_session) == 2

    history = await ColumnHistoryRepository(db_session).list_for_row("Employee", employee.Id)
    assert [(h.version, h.column_name) for h in history] == [(1, "FirstName"), (2, "LastName")]


@pytest.mark.asyncio
async def test_history_is_immutable(db_session, user):
    repo = CrudRepository(db_session)
    employee = await _saved_employee(db_session)
    tracker = LoggedChangeTracker(employee, user=user)
    employee.FirstName = "Orville"
    await repo.update(employee, tracker)
    await tracker.save(db_session)

    with pytest.raises(DBAPIError):
        await db_session.execute(text("UPDATE column_history SET new_value = 'tampered'"))
    await db_session.rollback()

    with pytest.raises(DBAPIError):
        await db_session.execute(text("DELETE FROM column_history"))
    await db_session.rollback()


@pytest.mark.asyncio
async def test_init_change_tracking_runs_once(engine):
    assert is_change_tracking_initialized(engine) is True
    await init_change_tracking(engine)
    await init_change_tracking(engine)
    assert is_change_tracking_initialized(engine) is True


@pytest.mark.asyncio
async def test_concurrent_version_increment_is_detected(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'race.db'}")
    try:
        await init_change_tracking(engine)
        factory = async_sessionmaker(engine, expire_on_commit=False)

        async with factory() as session:
            await RowVersionRepository(session).increment("Employee", 1)
            await session.commit()

        async with factory() as first, factory() as second:
            stale = await RowVersionRepository(first).get("Employee", 1)
            await first.commit()

            assert await RowVersionRepository(second).increment("Employee", 1) == 2
            await second.commit()

            stale.version = stale.version + 1
            with pytest.raises(StaleDataError):
                await first.flush()
            await first.rollback()
    finally:
        await engine.dispose()
