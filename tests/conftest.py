from __future__ import annotations

from datetime import datetime, timedelta, timezone
from fnmatch import fnmatchcase

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from todo_api.cache.layer import CacheLayer
from todo_api.core.errors import register_exception_handlers
from todo_api.dependencies import get_task_service
from todo_api.events.publisher import EventPublisher
from todo_api.models import Task, TaskStatus
from todo_api.repositories.task_repository import TaskRepository
from todo_api.services.task_service import TaskService

BASE_TIME = datetime(2025, 10, 1, 10, 0, 0, tzinfo=timezone.utc)


class InMemoryTaskRepository(TaskRepository):
    """Dict-backed repository that records the calls it receives."""

    def __init__(self, tasks: list[Task] | None = None) -> None:
        self.tasks: dict[int, Task] = {}
        self.calls: list[tuple] = []
        self.error: Exception | None = None
        for task in tasks or []:
            self._store(task)

    def _store(self, task: Task) -> None:
        if task.id is None:
            task.id = max(self.tasks, default=0) + 1
        self.tasks[task.id] = task

    def _record(self, *call) -> None:
        self.calls.append(call)
        if self.error is not None:
            raise self.error

    async def get_paged(self, search, status, page, page_size):
        self._record("get_paged", search, status, page, page_size)
        matches = [
            task
            for task in self.tasks.values()
            if (not search or search.lower() in task.title.lower())
            and (status is None or task.status == status)
        ]
        matches.sort(key=lambda task: task.created_at, reverse=True)
        skip = max((page - 1) * page_size, 0)
        return len(matches), matches[skip : skip + max(page_size, 0)]

    async def get_by_id(self, task_id):
        self._record("get_by_id", task_id)
        return self.tasks.get(task_id)

    async def add(self, task):
        self._record("add", task)
        self._store(task)

    async def update(self, task):
        self._record("update", task)
        self.tasks[task.id] = task

    async def remove(self, task):
        self._record("remove", task)
        self.tasks.pop(task.id, None)

    async def count_by_status(self, status):
        self._record("count_by_status", status)
        return sum(1 for task in self.tasks.values() if task.status == status)


class RecordingCache(CacheLayer):
    """Plain dict cache; remembers writes and pattern deletions."""

    def __init__(self) -> None:
        self.entries: dict[str, str] = {}
        self.sets: list[tuple[str, str, int]] = []
        self.deleted_patterns: list[str] = []

    async def get(self, key):
        return self.entries.get(key)

    async def set(self, key, value, ttl):
        self.sets.append((key, value, ttl))
        self.entries[key] = value

    async def delete_pattern(self, pattern):
        self.deleted_patterns.append(pattern)
        matched = [key for key in self.entries if fnmatchcase(key, pattern)]
        for key in matched:
            del self.entries[key]
        return len(matched)


class RecordingPublisher(EventPublisher):
    def __init__(self) -> None:
        self.events: list[tuple[int, str]] = []
        self.error: Exception | None = None

    async def publish_status_changed(self, task_id, new_status):
        if self.error is not None:
            raise self.error
        self.events.append((task_id, new_status))


def make_task(
    task_id: int,
    title: str = "Task",
    status: TaskStatus = TaskStatus.ACTIVE,
    age_hours: int = 0,
    description: str | None = None,
) -> Task:
    return Task(
        id=task_id,
        title=title,
        description=description,
        status=status,
        created_at=BASE_TIME - timedelta(hours=age_hours),
    )


@pytest.fixture
def repository() -> InMemoryTaskRepository:
    return InMemoryTaskRepository()


@pytest.fixture
def cache() -> RecordingCache:
    return RecordingCache()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def service(repository, cache, publisher) -> TaskService:
    return TaskService(repository, cache, publisher, cache_ttl=300)


@pytest.fixture
def api_client(service: TaskService) -> TestClient:
    """FastAPI test client with the task service wired to in-memory doubles."""
    app = FastAPI()
    register_exception_handlers(app)

    from todo_api.routers import tasks

    app.include_router(tasks.router)
    app.dependency_overrides[get_task_service] = lambda: service
    return TestClient(app)
