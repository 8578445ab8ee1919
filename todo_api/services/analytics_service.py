from todo_api.models import TaskStats, TaskStatus
from todo_api.repositories.task_repository import TaskRepository


class AnalyticsService:
    """Per-status task counts, read straight from the store."""

    def __init__(self, repository: TaskRepository) -> None:
        self.repository = repository

    async def get_stats(self) -> TaskStats:
        active = await self.repository.count_by_status(TaskStatus.ACTIVE)
        completed = await self.repository.count_by_status(TaskStatus.COMPLETED)
        return TaskStats(active_count=active, completed_count=completed)
