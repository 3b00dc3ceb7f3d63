from __future__ import annotations

import os
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict

import pytest

# Ensure we default to memory backend for tests to avoid filesystem dependencies
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from fastapi.testclient import TestClient  # noqa: E402

from task_api.db import SQLiteRepository  # noqa: E402
from task_api.main import app  # noqa: E402
from task_api.repositories import InMemoryRepository, Repository  # noqa: E402
from task_api.service import TaskService, get_task_service  # noqa: E402
from task_api.settings import Settings, get_settings  # noqa: E402

from .fakes import FakeSummarizer  # noqa: E402

OWNER = "user-alice"
OTHER_OWNER = "user-bob"


def task_payload(
    title: str = "Write report",
    description: str = "Compile the quarterly numbers into the report template",
    due_date: str = "2024-12-31",
    priority: str = "medium",
    **extra: Any,
) -> Dict[str, Any]:
    payload = {
        "title": title,
        "description": description,
        "dueDate": due_date,
        "priority": priority,
    }
    payload.update(extra)
    return payload


@pytest.fixture()
def summarizer() -> FakeSummarizer:
    return FakeSummarizer()


@pytest.fixture(params=["memory", "sqlite"])
def repository(request: pytest.FixtureRequest, tmp_path: Path) -> Repository:
    """Every repository-level test runs against both backends."""
    if request.param == "sqlite":
        return SQLiteRepository(str(tmp_path / "tasks.db"))
    return InMemoryRepository()


@pytest.fixture()
def service(summarizer: FakeSummarizer) -> TaskService:
    return TaskService(InMemoryRepository(), summarizer)


@pytest.fixture()
def client(service: TaskService):
    app.dependency_overrides[get_task_service] = lambda: service
    try:
        test_client = TestClient(app)
        test_client.headers["X-User-Id"] = OWNER
        yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def settings() -> Settings:
    return replace(get_settings(), persistence_backend="memory", rate_limit_enabled=False, enable_basic_auth=False)
