from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..auth import get_owner_dependency
from ..rate_limit import build_rate_limiters, get_rate_limit_dependency
from ..repositories import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..schemas import (
    DeleteResult,
    TaskCreate,
    TaskOut,
    TaskPage,
    TaskStatusUpdate,
    TaskSummaryOut,
    TaskUpdate,
)
from ..service import TaskService, build_list_query, get_task_service
from ..settings import Settings, get_settings
from ..utils import pagination_envelope

_ERROR_RESPONSES = {
    401: {"description": "Not authenticated"},
    422: {"description": "Validation error listing every invalid field"},
    429: {"description": "Rate limit exceeded"},
}


# PUBLIC_INTERFACE
def create_router(settings: Optional[Settings] = None) -> APIRouter:
    """
    Build the task router. Every route resolves the owner id first and is
    guarded by the general rate limiter; summarize additionally uses the AI limiter.
    """
    settings = settings or get_settings()
    owner_dep = get_owner_dependency(settings)
    limiters = build_rate_limiters(settings)

    router = APIRouter(
        prefix="/api/tasks",
        tags=["tasks"],
        dependencies=[Depends(get_rate_limit_dependency(limiters["api"], "api", owner_dep))],
        responses=_ERROR_RESPONSES,
    )

    # PUBLIC_INTERFACE
    @router.post(
        "/",
        response_model=TaskOut,
        status_code=status.HTTP_201_CREATED,
        summary="Create Task",
        description="Create a new task for the caller. New tasks always start in status 'todo'.",
        responses={201: {"description": "Task created successfully"}},
    )
    def create_task(
        payload: TaskCreate,
        owner_id: str = Depends(owner_dep),
        service: TaskService = Depends(get_task_service),
    ) -> TaskOut:
        return TaskOut.from_entity(service.create(owner_id, payload))

    # PUBLIC_INTERFACE
    @router.get(
        "/",
        response_model=TaskPage,
        summary="List Tasks",
        description=(
            "List the caller's tasks with optional filters and pagination.\n\n"
            "Query parameters:\n"
            "- priority: low, medium or high\n"
            "- dueDate: only tasks due on or before this date (inclusive)\n"
            f"- page: 1-indexed page number\n"
            f"- pageSize (alias limit): items per page, 1..{MAX_PAGE_SIZE}\n\n"
            "Results are ordered by due date, then id. Pages past the end are empty."
        ),
        responses={200: {"description": "List retrieved successfully"}},
    )
    def list_tasks(
        priority: Optional[str] = Query(None, description="Filter by priority"),
        due_date: Optional[str] = Query(None, alias="dueDate", description="Due on or before (ISO date)"),
        page: int = Query(1, description="1-indexed page number"),
        page_size: Optional[int] = Query(None, alias="pageSize", description="Items per page"),
        limit: Optional[int] = Query(None, description="Alias of pageSize"),
        owner_id: str = Depends(owner_dep),
        service: TaskService = Depends(get_task_service),
    ) -> TaskPage:
        size = page_size if page_size is not None else (limit if limit is not None else DEFAULT_PAGE_SIZE)
        query = build_list_query(priority=priority, due_on_or_before=due_date, page=page, page_size=size)
        items, total, _ = service.list(owner_id, query)
        envelope = pagination_envelope(
            items=[TaskOut.from_entity(it) for it in items],
            total=total,
            page=query.page,
            page_size=query.page_size,
        )
        return TaskPage(**envelope)

    # PUBLIC_INTERFACE
    @router.get(
        "/{task_id}",
        response_model=TaskOut,
        summary="Get Task",
        responses={404: {"description": "Task not found"}},
    )
    def get_task(
        task_id: str,
        owner_id: str = Depends(owner_dep),
        service: TaskService = Depends(get_task_service),
    ) -> TaskOut:
        return TaskOut.from_entity(service.get(task_id, owner_id))

    def _update(task_id: str, payload: TaskUpdate, owner_id: str, service: TaskService) -> TaskOut:
        return TaskOut.from_entity(service.update(task_id, owner_id, payload))

    # PUBLIC_INTERFACE
    @router.patch(
        "/{task_id}",
        response_model=TaskOut,
        summary="Update Task",
        description="Partially update a task. A status change must follow todo <-> in-progress <-> done.",
        responses={
            400: {"description": "Invalid status transition"},
            404: {"description": "Task not found"},
        },
    )
    def patch_task(
        task_id: str,
        payload: TaskUpdate,
        owner_id: str = Depends(owner_dep),
        service: TaskService = Depends(get_task_service),
    ) -> TaskOut:
        return _update(task_id, payload, owner_id, service)

    # PUBLIC_INTERFACE
    @router.put(
        "/{task_id}",
        response_model=TaskOut,
        summary="Update Task (PUT)",
        description="Same partial-update semantics as PATCH; kept for client compatibility.",
        responses={
            400: {"description": "Invalid status transition"},
            404: {"description": "Task not found"},
        },
    )
    def put_task(
        task_id: str,
        payload: TaskUpdate,
        owner_id: str = Depends(owner_dep),
        service: TaskService = Depends(get_task_service),
    ) -> TaskOut:
        return _update(task_id, payload, owner_id, service)

    # PUBLIC_INTERFACE
    @router.patch(
        "/{task_id}/status",
        response_model=TaskOut,
        summary="Change Task Status",
        responses={
            400: {"description": "Invalid status transition"},
            404: {"description": "Task not found"},
        },
    )
    def change_task_status(
        task_id: str,
        payload: TaskStatusUpdate,
        owner_id: str = Depends(owner_dep),
        service: TaskService = Depends(get_task_service),
    ) -> TaskOut:
        return TaskOut.from_entity(service.change_status(task_id, owner_id, payload))

    # PUBLIC_INTERFACE
    @router.delete(
        "/{task_id}",
        response_model=DeleteResult,
        summary="Delete Task",
        responses={
            200: {"description": "Task deleted"},
            404: {"description": "Task not found"},
        },
    )
    def delete_task(
        task_id: str,
        owner_id: str = Depends(owner_dep),
        service: TaskService = Depends(get_task_service),
    ) -> DeleteResult:
        service.delete(task_id, owner_id)
        return DeleteResult(id=task_id)

    # PUBLIC_INTERFACE
    @router.post(
        "/{task_id}/summarize",
        response_model=TaskSummaryOut,
        summary="Summarize Task",
        description=(
            "Generate a one-sentence summary of the task description and store it on the task. "
            "An existing summary is replaced."
        ),
        dependencies=[Depends(get_rate_limit_dependency(limiters["ai"], "ai", owner_dep))],
        responses={
            404: {"description": "Task not found"},
            502: {"description": "Summarization provider failed or timed out"},
        },
    )
    def summarize_task(
        task_id: str,
        owner_id: str = Depends(owner_dep),
        service: TaskService = Depends(get_task_service),
    ) -> TaskSummaryOut:
        tid, summary = service.summarize(task_id, owner_id)
        return TaskSummaryOut(task_id=tid, summary=summary)

    return router
