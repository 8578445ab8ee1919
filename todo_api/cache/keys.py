from urllib.parse import quote

from todo_api.models import TaskStatus

TASK_KEY_PATTERN = "task-*"
TASKS_KEY_PATTERN = "tasks-*"
INVALIDATION_PATTERNS = (TASK_KEY_PATTERN, TASKS_KEY_PATTERN)


def _escape(value: str | None) -> str:
    # "-" separates positions, so it must not survive inside a value.
    if value is None:
        return ""
    return quote(value, safe="").replace("-", "%2D")


def task_cache_key(task_id: int) -> str:
    return f"task-{task_id}"


def tasks_cache_key(
    search: str | None, status: TaskStatus | None, page: int, page_size: int
) -> str:
    status_part = status.value if status is not None else ""
    return f"tasks-{_escape(search)}-{status_part}-{page}-{page_size}"
