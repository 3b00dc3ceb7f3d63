from datetime import date, datetime

import pytest

from task_api.errors import ValidationError
from task_api.models import TaskPriority, TaskStatus
from task_api.schemas import TaskCreate, TaskUpdate, parse_due_date, validate_payload

from .conftest import task_payload


def fields_of(err: ValidationError):
    return {v["field"] for v in err.violations}


class TestDueDateParsing:
    def test_date_string(self):
        assert parse_due_date("2024-12-31") == date(2024, 12, 31)

    def test_datetime_string_keeps_date(self):
        assert parse_due_date("2024-12-31T23:15:00") == date(2024, 12, 31)
        assert parse_due_date("2024-12-31T10:00:00Z") == date(2024, 12, 31)

    def test_objects(self):
        assert parse_due_date(datetime(2025, 1, 2, 8, 30)) == date(2025, 1, 2)
        assert parse_due_date(date(2025, 1, 2)) == date(2025, 1, 2)

    def test_garbage(self):
        with pytest.raises(ValueError):
            parse_due_date("not-a-date")
        with pytest.raises(ValueError):
            parse_due_date(12345)  # type: ignore[arg-type]


class TestTaskCreate:
    def test_valid_payload(self):
        data = validate_payload(TaskCreate, task_payload(title="  A  ", description=" B "))
        assert data.title == "A"
        assert data.description == "B"
        assert data.due_date == date(2024, 12, 31)
        assert data.priority is TaskPriority.MEDIUM

    def test_snake_case_names_accepted(self):
        data = validate_payload(
            TaskCreate,
            {"title": "A", "description": "B", "due_date": "2024-12-31", "priority": "low"},
        )
        assert data.due_date == date(2024, 12, 31)

    def test_reports_every_violation(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(TaskCreate, {"title": " ", "priority": "urgent", "status": "archived"})
        assert fields_of(exc_info.value) == {"title", "description", "dueDate", "priority", "status"}

    def test_status_validated_against_enum(self):
        data = validate_payload(TaskCreate, task_payload(status="done"))
        assert data.status is TaskStatus.DONE

    def test_title_too_long(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(TaskCreate, task_payload(title="x" * 201))
        assert fields_of(exc_info.value) == {"title"}


class TestTaskUpdate:
    def test_empty_update_is_valid(self):
        data = validate_payload(TaskUpdate, {})
        assert data.to_patch().is_empty()

    def test_nulls_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(TaskUpdate, {"title": None, "dueDate": None, "priority": None, "status": None})
        assert fields_of(exc_info.value) == {"title", "dueDate", "priority", "status"}

    def test_unknown_fields_ignored(self):
        data = validate_payload(TaskUpdate, {"ownerId": "mallory", "id": "x", "summary": "s", "title": "T"})
        assert data.to_patch().changes() == {"title": "T"}

    def test_patch_carries_typed_values(self):
        data = validate_payload(TaskUpdate, {"dueDate": "2025-03-01", "priority": "high", "status": "in-progress"})
        assert data.to_patch().changes() == {
            "due_date": date(2025, 3, 1),
            "priority": TaskPriority.HIGH,
            "status": TaskStatus.IN_PROGRESS,
        }
