from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, TypedDict


# PUBLIC_INTERFACE
class TaskStatus(str, Enum):
    """Lifecycle states of a task."""

    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"


# PUBLIC_INTERFACE
class TaskPriority(str, Enum):
    """Priority levels a task can carry."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    A lightweight domain record representing a task for non-ORM storage
    backends.

    Fields:
    - id: Opaque unique identifier (hex string), assigned at creation
    - owner_id: Identity of the user who created the task; never changes
    - title: Short title (trimmed, non-empty)
    - description: Detailed description (trimmed, non-empty)
    - due_date: Calendar due date
    - priority: TaskPriority value
    - status: TaskStatus value
    - summary: Generated one-sentence summary, None until generated
    - created_at: UTC creation timestamp
    - updated_at: UTC last write timestamp
    """

    id: str
    owner_id: str
    title: str
    description: str
    due_date: date
    priority: TaskPriority
    status: TaskStatus
    summary: Optional[str]
    created_at: datetime
    updated_at: datetime


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class NewTask:
    """Validated fields for a task about to be stored. Status is always todo."""

    owner_id: str
    title: str
    description: str
    due_date: date
    priority: TaskPriority


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class TaskPatch:
    """
    Allow-listed set of fields a write may change.

    None means "leave unchanged". Identity fields (id, owner_id) and
    timestamps are not representable here, so no patch can touch them.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[date] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    summary: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        """Return only the fields this patch sets."""
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    def is_empty(self) -> bool:
        return not self.changes()
