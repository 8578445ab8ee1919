import logging
from datetime import datetime, timezone

from todo_api.cache.decorators import invalidates, read_through
from todo_api.cache.keys import INVALIDATION_PATTERNS, task_cache_key, tasks_cache_key
from todo_api.cache.layer import CacheLayer
from todo_api.events.publisher import EventPublisher
from todo_api.models import (
    Task,
    TaskCreate,
    TaskPage,
    TaskResponse,
    TaskStatus,
    TaskUpdate,
)
from todo_api.repositories.task_repository import TaskRepository

logger = logging.getLogger(__name__)


class TaskService:
    """
    Task use cases over a repository, a cache and an event publisher.

    Reads go through the cache; every successful mutation drops all cached
    task and task-list entries. Only a status change on update publishes an
    event, and it is published before the new values are persisted.
    """

    def __init__(
        self,
        repository: TaskRepository,
        cache: CacheLayer,
        publisher: EventPublisher,
        cache_ttl: int = 300,
    ) -> None:
        self.repository = repository
        self.cache = cache
        self.publisher = publisher
        self.cache_ttl = cache_ttl

    @invalidates(*INVALIDATION_PATTERNS)
    async def create_task(self, task_data: TaskCreate) -> TaskResponse:
        task = Task.model_validate(task_data)
        task.created_at = datetime.now(timezone.utc)
        await self.repository.add(task)
        logger.info("Task created", extra={"task_id": task.id})
        return TaskResponse.model_validate(task)

    @invalidates(*INVALIDATION_PATTERNS)
    async def update_task(self, task_id: int, task_data: TaskUpdate) -> bool:
        if task_id != task_data.id:
            return False

        task = await self.repository.get_by_id(task_id)
        if not task:
            return False

        if task.status != task_data.status:
            await self.publisher.publish_status_changed(
                task_data.id, task_data.status.value
            )

        task.title = task_data.title
        task.description = task_data.description
        task.status = task_data.status
        await self.repository.update(task)
        logger.info("Task updated", extra={"task_id": task_id})
        return True

    @invalidates(*INVALIDATION_PATTERNS)
    async def delete_task(self, task_id: int) -> bool:
        task = await self.repository.get_by_id(task_id)
        if not task:
            return False

        await self.repository.remove(task)
        logger.info("Task deleted", extra={"task_id": task_id})
        return True

    @read_through(tasks_cache_key, TaskPage)
    async def get_tasks(
        self,
        search: str | None,
        status: TaskStatus | None,
        page: int,
        page_size: int,
    ) -> TaskPage:
        total, tasks = await self.repository.get_paged(search, status, page, page_size)
        return TaskPage(
            total_items=total,
            page=page,
            page_size=page_size,
            items=[TaskResponse.model_validate(task) for task in tasks],
        )

    @read_through(task_cache_key, TaskResponse)
    async def get_task(self, task_id: int) -> TaskResponse | None:
        task = await self.repository.get_by_id(task_id)
        if task is None:
            return None
        return TaskResponse.model_validate(task)
