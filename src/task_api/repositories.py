from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, timezone
from threading import RLock
from typing import Dict, List, Optional, Tuple
from uuid import uuid4

from .models import NewTask, TaskEntity, TaskPatch, TaskPriority, TaskStatus
from .settings import Settings, get_settings
from .utils import page_offset

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class ListQuery:
    """
    Validated query parameters for listing an owner's tasks.
    Filters are conjunctive; None means "no filter".
    """
    priority: Optional[TaskPriority] = None
    due_on_or_before: Optional[date] = None
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE


def sort_key(task: TaskEntity) -> Tuple[date, str]:
    """Deterministic list order: due date ascending, then id ascending."""
    return task["due_date"], task["id"]


def new_task_id() -> str:
    return uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# PUBLIC_INTERFACE
class Repository(ABC):
    """
    Abstract repository contract for task storage backends.

    Every operation is scoped by owner_id: a task that belongs to another owner
    behaves exactly like a task that does not exist. Backends raise
    PersistenceError when the underlying storage fails.
    """

    @abstractmethod
    def create(self, task: NewTask) -> TaskEntity:
        """Store a new task in status todo; assign id, created_at and updated_at."""

    @abstractmethod
    def find_one(self, task_id: str, owner_id: str) -> Optional[TaskEntity]:
        """Return the owner's task by id, or None if not found."""

    @abstractmethod
    def find_many(self, owner_id: str, query: Optional[ListQuery] = None) -> Tuple[List[TaskEntity], int]:
        """
        Return one page of the owner's tasks and the total count matching filters.
        - Filter by priority (exact) and due date (on or before, inclusive)
        - Ordered by (due_date, id) ascending
        - Pages past the end are empty
        """

    @abstractmethod
    def update(self, task_id: str, owner_id: str, patch: TaskPatch) -> Optional[TaskEntity]:
        """Apply all patch fields in one atomic write and refresh updated_at. None if not found."""

    @abstractmethod
    def delete(self, task_id: str, owner_id: str) -> bool:
        """Delete the owner's task. Return True if deleted, False if not found."""


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[str, TaskEntity] = {}

    def _now(self) -> datetime:
        return utc_now()

    def _owned(self, task_id: str, owner_id: str) -> Optional[TaskEntity]:
        item = self._items.get(task_id)
        if item is None or item["owner_id"] != owner_id:
            return None
        return item

    def create(self, task: NewTask) -> TaskEntity:
        now = self._now()
        entity: TaskEntity = {
            "id": new_task_id(),
            "owner_id": task.owner_id,
            "title": task.title,
            "description": task.description,
            "due_date": task.due_date,
            "priority": task.priority,
            "status": TaskStatus.TODO,
            "summary": None,
            "created_at": now,
            "updated_at": now,
        }
        with self._lock:
            self._items[entity["id"]] = entity
        return entity.copy()

    def find_one(self, task_id: str, owner_id: str) -> Optional[TaskEntity]:
        with self._lock:
            item = self._owned(task_id, owner_id)
            return None if item is None else item.copy()

    def find_many(self, owner_id: str, query: Optional[ListQuery] = None) -> Tuple[List[TaskEntity], int]:
        q = query or ListQuery()
        with self._lock:
            items = [t for t in self._items.values() if t["owner_id"] == owner_id]

            if q.priority is not None:
                items = [t for t in items if t["priority"] == q.priority]

            if q.due_on_or_before is not None:
                items = [t for t in items if t["due_date"] <= q.due_on_or_before]

            total = len(items)
            items.sort(key=sort_key)

            start = page_offset(q.page, q.page_size)
            page = items[start:start + q.page_size]

            # Return copies to avoid external mutation
            return [t.copy() for t in page], total

    def update(self, task_id: str, owner_id: str, patch: TaskPatch) -> Optional[TaskEntity]:
        with self._lock:
            existing = self._owned(task_id, owner_id)
            if existing is None:
                return None

            updated = existing.copy()
            updated.update(patch.changes())  # type: ignore[typeddict-item]
            updated["updated_at"] = self._now()

            self._items[task_id] = updated
            return updated.copy()

    def delete(self, task_id: str, owner_id: str) -> bool:
        with self._lock:
            if self._owned(task_id, owner_id) is None:
                return False
            del self._items[task_id]
            return True


# PUBLIC_INTERFACE
def get_repository(settings: Optional[Settings] = None) -> Repository:
    """
    Factory to return the configured repository based on settings.
    - memory: InMemoryRepository
    - sqlite: SQLiteRepository (standard library sqlite3)
    """
    settings = settings or get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteRepository

        return SQLiteRepository(settings.sqlite_db_path)
    return InMemoryRepository()
