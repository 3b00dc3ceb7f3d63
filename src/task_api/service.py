"""
Task operations.

TaskService is the only place that combines storage with the status state
machine and the summarization capability, so every write path goes through the
same checks regardless of which HTTP route (or caller) invoked it.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, List, Mapping, Optional, Tuple, Union

from fastapi import Request

from .errors import InvalidTransitionError, NotFound, SummarizationError, ValidationError
from .models import NewTask, TaskEntity, TaskPatch, TaskPriority, TaskStatus
from .repositories import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, ListQuery, Repository, get_repository
from .schemas import TaskCreate, TaskStatusUpdate, TaskUpdate, parse_due_date, validate_payload
from .settings import Settings, get_settings
from .summarizer import Summarizer, get_summarizer
from .transitions import validate_transition
from .utils import total_pages

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def build_list_query(
    priority: Union[TaskPriority, str, None] = None,
    due_on_or_before: Union[date, str, None] = None,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> ListQuery:
    """
    Validate list parameters and build a ListQuery.

    Raises:
        ValidationError listing every invalid parameter. An unknown priority is an
        error rather than a filter that matches nothing; a blank one is no filter.
    """
    violations = []

    # Blank query values mean "no filter"
    if isinstance(priority, str) and not priority.strip():
        priority = None
    if isinstance(due_on_or_before, str) and not due_on_or_before.strip():
        due_on_or_before = None

    parsed_priority: Optional[TaskPriority] = None
    if priority is not None:
        try:
            parsed_priority = TaskPriority(priority)
        except ValueError:
            violations.append({"field": "priority", "message": "Priority must be low, medium, or high"})

    parsed_due: Optional[date] = None
    if due_on_or_before is not None:
        try:
            parsed_due = parse_due_date(due_on_or_before)
        except ValueError as e:
            violations.append({"field": "dueDate", "message": str(e)})

    if page < 1:
        violations.append({"field": "page", "message": "page must be 1 or greater"})
    if not 1 <= page_size <= MAX_PAGE_SIZE:
        violations.append({"field": "pageSize", "message": f"pageSize must be between 1 and {MAX_PAGE_SIZE}"})

    if violations:
        raise ValidationError(violations)

    return ListQuery(priority=parsed_priority, due_on_or_before=parsed_due, page=page, page_size=page_size)


class TaskService:
    """
    Owner-scoped task operations.

    Args:
        repository: storage backend
        summarizer: text-summarization capability used by summarize()
    """

    def __init__(self, repository: Repository, summarizer: Summarizer) -> None:
        self.repository = repository
        self.summarizer = summarizer

    def _require(self, task_id: str, owner_id: str) -> TaskEntity:
        task = self.repository.find_one(task_id, owner_id)
        if task is None:
            raise NotFound()
        return task

    # PUBLIC_INTERFACE
    def create(self, owner_id: str, payload: Union[TaskCreate, Mapping[str, Any]]) -> TaskEntity:
        """Create a task for `owner_id`. Any supplied status is discarded; tasks start as todo."""
        data = validate_payload(TaskCreate, payload)
        task = self.repository.create(
            NewTask(
                owner_id=owner_id,
                title=data.title,
                description=data.description,
                due_date=data.due_date,
                priority=data.priority,
            )
        )
        logger.info("Task created id=%s owner=%s", task["id"], owner_id)
        return task

    # PUBLIC_INTERFACE
    def get(self, task_id: str, owner_id: str) -> TaskEntity:
        return self._require(task_id, owner_id)

    # PUBLIC_INTERFACE
    def list(self, owner_id: str, query: Optional[ListQuery] = None) -> Tuple[List[TaskEntity], int, int]:
        """Return (items, total, total_pages) for one page of the owner's tasks."""
        q = query or ListQuery()
        items, total = self.repository.find_many(owner_id, q)
        return items, total, total_pages(total, q.page_size)

    # PUBLIC_INTERFACE
    def update(self, task_id: str, owner_id: str, payload: Union[TaskUpdate, Mapping[str, Any]]) -> TaskEntity:
        """
        Apply a partial update. A status change in the payload must be a legal
        transition; a status equal to the current one is dropped as a no-op.
        """
        data = validate_payload(TaskUpdate, payload)
        patch = data.to_patch()
        current = self._require(task_id, owner_id)

        if patch.status is not None:
            try:
                is_change = validate_transition(current["status"], patch.status)
            except InvalidTransitionError:
                logger.info(
                    "Rejected status transition id=%s %s -> %s",
                    task_id,
                    current["status"].value,
                    patch.status.value,
                )
                raise
            if not is_change:
                patch = TaskPatch(**{**patch.changes(), "status": None})

        if patch.is_empty():
            return current

        updated = self.repository.update(task_id, owner_id, patch)
        if updated is None:
            # Deleted between the read and the write
            raise NotFound()
        if patch.status is not None:
            logger.info(
                "Task status changed id=%s %s -> %s",
                task_id,
                current["status"].value,
                updated["status"].value,
            )
        return updated

    # PUBLIC_INTERFACE
    def change_status(
        self,
        task_id: str,
        owner_id: str,
        payload: Union[TaskStatusUpdate, TaskStatus, str, Mapping[str, Any]],
    ) -> TaskEntity:
        """Move a task to another status. Same-status requests succeed without writing."""
        if isinstance(payload, (TaskStatus, str)):
            payload = {"status": payload}
        data = validate_payload(TaskStatusUpdate, payload)
        return self.update(task_id, owner_id, TaskUpdate(status=data.status))

    # PUBLIC_INTERFACE
    def delete(self, task_id: str, owner_id: str) -> None:
        if not self.repository.delete(task_id, owner_id):
            raise NotFound()
        logger.info("Task deleted id=%s owner=%s", task_id, owner_id)

    # PUBLIC_INTERFACE
    def summarize(self, task_id: str, owner_id: str) -> Tuple[str, str]:
        """
        Generate and store a one-sentence summary of the task description.

        An existing summary is overwritten. On any capability failure nothing is
        written and SummarizationError propagates with the upstream detail.

        Returns:
            (task_id, summary)
        """
        task = self._require(task_id, owner_id)
        logger.info("Summarizing task id=%s (has_summary=%s)", task_id, task["summary"] is not None)

        try:
            summary = self.summarizer.summarize(task["description"])
        except SummarizationError as e:
            logger.warning("Summarization failed for task id=%s: %s", task_id, e.detail)
            raise
        except Exception as e:
            logger.warning("Summarization failed for task id=%s: %s", task_id, e)
            raise SummarizationError(str(e) or e.__class__.__name__) from e

        summary = (summary or "").strip() if isinstance(summary, str) else ""
        if not summary:
            logger.warning("Summarization returned no text for task id=%s", task_id)
            raise SummarizationError("Summarization provider returned an empty response")

        updated = self.repository.update(task_id, owner_id, TaskPatch(summary=summary))
        if updated is None:
            raise NotFound()
        return updated["id"], summary


# PUBLIC_INTERFACE
def build_task_service(settings: Optional[Settings] = None) -> TaskService:
    """Wire a TaskService to the repository and summarizer the settings select."""
    settings = settings or get_settings()
    return TaskService(get_repository(settings), get_summarizer(settings))


# PUBLIC_INTERFACE
def get_task_service(request: Request) -> TaskService:
    """FastAPI dependency returning the service the app was built with. Overridden in tests via dependency_overrides."""
    return request.app.state.task_service
