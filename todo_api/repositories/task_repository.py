from __future__ import annotations

from abc import ABC, abstractmethod

from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from todo_api.models import Task, TaskStatus


class TaskRepository(ABC):
    """Persistent collection of tasks."""

    @abstractmethod
    async def get_paged(
        self,
        search: str | None,
        status: TaskStatus | None,
        page: int,
        page_size: int,
    ) -> tuple[int, list[Task]]:
        """Return the filtered total and one page of tasks, newest first."""

    @abstractmethod
    async def get_by_id(self, task_id: int) -> Task | None: ...

    @abstractmethod
    async def add(self, task: Task) -> None:
        """Insert the task; the store assigns its id."""

    @abstractmethod
    async def update(self, task: Task) -> None:
        """Persist a previously loaded task after its fields were merged."""

    @abstractmethod
    async def remove(self, task: Task) -> None: ...

    @abstractmethod
    async def count_by_status(self, status: TaskStatus) -> int: ...


class SQLModelTaskRepository(TaskRepository):
    """Task storage on an async SQLModel session."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def get_paged(
        self,
        search: str | None,
        status: TaskStatus | None,
        page: int,
        page_size: int,
    ) -> tuple[int, list[Task]]:
        conditions = []
        if search:
            conditions.append(
                func.lower(Task.title).contains(search.lower(), autoescape=True)
            )
        if status is not None:
            conditions.append(Task.status == status)

        count_query = select(func.count()).select_from(Task).where(*conditions)
        total = (await self._db.exec(count_query)).one()

        # Out-of-range paging is the caller's problem; never hand the
        # database a negative OFFSET or LIMIT.
        skip = max((page - 1) * page_size, 0)
        take = max(page_size, 0)

        query = (
            select(Task)
            .where(*conditions)
            .order_by(Task.created_at.desc())
            .offset(skip)
            .limit(take)
        )
        result = await self._db.exec(query)
        return total, list(result.all())

    async def get_by_id(self, task_id: int) -> Task | None:
        return await self._db.get(Task, task_id)

    async def add(self, task: Task) -> None:
        self._db.add(task)
        await self._db.commit()
        await self._db.refresh(task)

    async def update(self, task: Task) -> None:
        self._db.add(task)
        await self._db.commit()
        await self._db.refresh(task)

    async def remove(self, task: Task) -> None:
        await self._db.delete(task)
        await self._db.commit()

    async def count_by_status(self, status: TaskStatus) -> int:
        query = select(func.count()).select_from(Task).where(Task.status == status)
        return (await self._db.exec(query)).one()
