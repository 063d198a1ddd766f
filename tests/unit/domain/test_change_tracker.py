"""Unit tests for ChangeTracker."""

from datetime import datetime

from tablecrud.domain.entities import SaveAction
from tablecrud.domain.services import ChangeTracker

from sample_records import Employee, EmployeeStatus


def _employee() -> Employee:
    return Employee(FirstName="Wilbur", LastName="Wainright", Id=1)


def test_only_changed_column_is_reported():
    employee = _employee()
    tracker = ChangeTracker(employee)

    employee.LastName = "Wainright2"

    assert tracker.get_modified_columns() == ["LastName"]
    assert tracker["LastName"] == "Wainright"
    assert tracker.has_changes is True


def test_no_changes():
    employee = _employee()
    tracker = ChangeTracker(employee)

    assert tracker.get_modified_columns() == []
    assert tracker.get_changes() == {}
    assert tracker.has_changes is False


def test_value_equality_not_identity():
    employee = _employee()
    tracker = ChangeTracker(employee)

    employee.LastName = "".join(["Wain", "right"])

    assert tracker.get_modified_columns() == []


def test_reverting_a_change_clears_it():
    employee = _employee()
    tracker = ChangeTracker(employee)

    employee.FirstName = "Orville"
    employee.FirstName = "Wilbur"

    assert not tracker.has_changes


def test_changes_follow_declaration_order():
    employee = _employee()
    tracker = ChangeTracker(employee)

    employee.Status = EmployeeStatus.TERMINATED
    employee.FirstName = "Orville"

    assert tracker.get_modified_columns() == ["FirstName", "Status"]
    assert tracker.get_changes() == {
        "FirstName": ("Wilbur", "Orville"),
        "Status": (EmployeeStatus.ACTIVE, EmployeeStatus.TERMINATED),
    }


def test_action_filters_eligible_columns():
    employee = _employee()
    tracker = ChangeTracker(employee)

    employee.Created = datetime(2024, 1, 1)
    employee.Modified = datetime(2024, 1, 2)

    assert tracker.get_modified_columns(SaveAction.UPDATE) == ["Modified"]
    assert tracker.get_modified_columns(SaveAction.INSERT) == ["Created"]


def test_unmapped_fields_are_not_tracked():
    employee = _employee()
    tracker = ChangeTracker(employee)

    employee.Notes.append("promoted")

    assert "Notes" not in tracker
    assert not tracker.has_changes


def test_reset_takes_new_snapshot():
    employee = _employee()
    tracker = ChangeTracker(employee)
    employee.LastName = "Wainright2"

    tracker.reset()

    assert not tracker.has_changes
    assert tracker["LastName"] == "Wainright2"
