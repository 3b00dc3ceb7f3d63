from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .errors import ValidationError
from .models import TaskEntity, TaskPatch, TaskPriority, TaskStatus

# Shared type for incoming due dates which can be a date, datetime, or ISO8601 string
DueDateInput = Union[date, datetime, str]

TITLE_MAX_LENGTH = 200

_M = TypeVar("_M", bound=BaseModel)


def parse_due_date(value: DueDateInput) -> date:
    """
    Normalize due date input into a calendar date.
    - Strings may be an ISO date ('2025-01-31') or an ISO datetime; the time part is dropped.
    - datetime values are reduced to their date.
    """
    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, date):
        return value

    if isinstance(value, str):
        s = value.strip()
        try:
            return date.fromisoformat(s)
        except ValueError:
            pass
        try:
            # Accept a trailing 'Z', which fromisoformat rejects before Python 3.11
            return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
        except ValueError as e:
            raise ValueError(
                "Valid due date is required. Use an ISO8601 date or datetime string (e.g., '2025-01-31')."
            ) from e

    raise ValueError("Invalid type for dueDate; expected date, datetime, or ISO8601 string.")


def _clean_text(value: str, name: str, max_length: Optional[int] = None) -> str:
    s = value.strip()
    if not s:
        raise ValueError(f"{name} is required")
    if max_length is not None and len(s) > max_length:
        raise ValueError(f"{name} must be at most {max_length} characters")
    return s


class _CamelModel(BaseModel):
    # camelCase on the wire, snake_case in Python; both accepted on input
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# PUBLIC_INTERFACE
class TaskCreate(_CamelModel):
    """
    Schema for creating a new task.

    `status` is accepted and checked against the enum but never honoured:
    every task starts in `todo`.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "title": "Prepare release notes",
                "description": "Collect merged changes and write the 1.2 release notes",
                "dueDate": "2025-02-01",
                "priority": "medium",
            }
        },
    )

    title: str = Field(..., description="Short title for the task")
    description: str = Field(..., description="Detailed description of the task")
    due_date: date = Field(..., description="Due date. Accepts an ISO8601 date or datetime")
    priority: TaskPriority = Field(..., description="Task priority: low, medium or high")
    status: Optional[TaskStatus] = Field(default=None, description="Ignored; new tasks always start as todo")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _clean_text(v, "Title", TITLE_MAX_LENGTH)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        return _clean_text(v, "Description")

    @field_validator("due_date", mode="before")
    @classmethod
    def normalize_due_date(cls, v: Any) -> Any:
        if v is None:
            return v
        return parse_due_date(v)


# PUBLIC_INTERFACE
class TaskUpdate(_CamelModel):
    """
    Schema for updating an existing task.
    All fields are optional; only provided fields will be updated. Explicit nulls
    are rejected because every one of these fields is required on a task.
    Fields outside this allow-list (id, ownerId, summary, timestamps) are ignored.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "title": "Prepare 1.2 release notes",
                "priority": "high",
                "status": "in-progress",
            }
        },
    )

    title: Optional[str] = Field(default=None, description="Short title for the task")
    description: Optional[str] = Field(default=None, description="Detailed description of the task")
    due_date: Optional[date] = Field(default=None, description="Due date. Accepts an ISO8601 date or datetime")
    priority: Optional[TaskPriority] = Field(default=None, description="Task priority: low, medium or high")
    status: Optional[TaskStatus] = Field(
        default=None, description="New status; must be a legal transition from the current status"
    )

    @field_validator("title", "description", "priority", "status", mode="before")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _clean_text(v, "Title", TITLE_MAX_LENGTH)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _clean_text(v, "Description")

    @field_validator("due_date", mode="before")
    @classmethod
    def normalize_due_date(cls, v: Any) -> date:
        if v is None:
            raise ValueError("Field cannot be null")
        return parse_due_date(v)

    def to_patch(self) -> TaskPatch:
        """Convert to the storage patch. Status is carried but must be validated by the caller."""
        return TaskPatch(
            title=self.title,
            description=self.description,
            due_date=self.due_date,
            priority=self.priority,
            status=self.status,
        )


# PUBLIC_INTERFACE
class TaskStatusUpdate(_CamelModel):
    """Body of the dedicated status-change operation."""

    status: TaskStatus = Field(..., description="Requested status")


# PUBLIC_INTERFACE
class TaskOut(_CamelModel):
    """
    Schema returned by the API for a task.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "3f2b6c0e9a4d4c1f8e7b5a2d1c0f9e8d",
                "ownerId": "user-42",
                "title": "Prepare release notes",
                "description": "Collect merged changes and write the 1.2 release notes",
                "dueDate": "2025-02-01",
                "priority": "medium",
                "status": "todo",
                "summary": None,
                "createdAt": "2025-01-25T10:15:30.123456Z",
                "updatedAt": "2025-01-26T09:00:00.000001Z",
            }
        },
    )

    id: str = Field(..., description="Opaque unique identifier of the task")
    owner_id: str = Field(..., description="Identity of the owning user")
    title: str
    description: str
    due_date: date
    priority: TaskPriority
    status: TaskStatus
    summary: Optional[str] = Field(default=None, description="Generated summary; null until generated")
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, entity: TaskEntity) -> "TaskOut":
        return cls(**entity)


# PUBLIC_INTERFACE
class TaskPage(_CamelModel):
    """
    Envelope for paginated list responses.
    """

    items: List[TaskOut] = Field(..., description="Tasks on this page")
    total: int = Field(..., description="Total number of tasks matching the filters")
    page: int = Field(..., description="1-indexed page number")
    page_size: int = Field(..., description="Maximum number of tasks per page")
    total_pages: int = Field(..., description="ceil(total / pageSize)")


# PUBLIC_INTERFACE
class TaskSummaryOut(_CamelModel):
    """Result of a summarize call."""

    task_id: str
    summary: str


# PUBLIC_INTERFACE
class DeleteResult(BaseModel):
    message: str = "Task deleted successfully"
    id: str


def _field_name(loc: Iterable[Any]) -> str:
    # Drop the request section FastAPI prefixes to error locations
    parts = [str(p) for p in loc]
    if parts and parts[0] in {"body", "query", "path"}:
        parts = parts[1:]
    return ".".join(parts) or "body"


# PUBLIC_INTERFACE
def violations_from_errors(errors: Iterable[Mapping[str, Any]]) -> List[Dict[str, str]]:
    """Flatten pydantic/FastAPI error dicts into [{field, message}] entries."""
    out: List[Dict[str, str]] = []
    for err in errors:
        msg = str(err.get("msg", "Invalid value"))
        # pydantic prefixes messages raised from validators
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        out.append({"field": _field_name(err.get("loc", ())), "message": msg})
    return out


# PUBLIC_INTERFACE
def validate_payload(model: Type[_M], data: Union[_M, Mapping[str, Any]]) -> _M:
    """
    Validate raw input against a schema, raising the domain ValidationError
    listing every violation. Already-validated model instances pass through.
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(violations_from_errors(exc.errors())) from exc
