from fastapi import Depends, Request
from sqlmodel.ext.asyncio.session import AsyncSession
from typing_extensions import Annotated

from todo_api.cache.layer import CacheLayer
from todo_api.core.config import SettingsDep
from todo_api.database import get_db
from todo_api.events.publisher import EventPublisher
from todo_api.repositories.task_repository import SQLModelTaskRepository
from todo_api.services.task_service import TaskService


def get_cache(request: Request) -> CacheLayer:
    return request.app.state.cache


def get_publisher(request: Request) -> EventPublisher:
    return request.app.state.publisher


async def get_task_service(
    settings: SettingsDep,
    db: AsyncSession = Depends(get_db),
    cache: CacheLayer = Depends(get_cache),
    publisher: EventPublisher = Depends(get_publisher),
) -> TaskService:
    return TaskService(
        SQLModelTaskRepository(db),
        cache,
        publisher,
        cache_ttl=settings.cache_ttl_seconds,
    )


TaskServiceDep = Annotated[TaskService, Depends(get_task_service)]
