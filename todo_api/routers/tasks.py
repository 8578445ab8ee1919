from fastapi import APIRouter, HTTPException, Query, Request, Response, status

from todo_api.dependencies import TaskServiceDep
from todo_api.models import TaskCreate, TaskPage, TaskResponse, TaskStatus, TaskUpdate

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


def _not_found(task_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Task with id {task_id} not found",
    )


@router.get("", response_model=TaskPage)
async def get_tasks(
    service: TaskServiceDep,
    search: str | None = None,
    task_status: TaskStatus | None = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100, alias="pageSize"),
):
    """List tasks, newest first, optionally filtered by title and status"""
    return await service.get_tasks(
        search=search, status=task_status, page=page, page_size=page_size
    )


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(task_id: int, service: TaskServiceDep):
    """Get a specific task by ID"""
    task = await service.get_task(task_id)
    if not task:
        raise _not_found(task_id)
    return task


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    request: Request,
    response: Response,
    service: TaskServiceDep,
):
    """Create a new task"""
    task = await service.create_task(task_data)
    response.headers["Location"] = str(request.url_for("get_task", task_id=task.id))
    return task


@router.put("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_task(task_id: int, task_data: TaskUpdate, service: TaskServiceDep):
    """Replace a task's title, description and status"""
    if task_id != task_data.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Path id {task_id} does not match body id {task_data.id}",
        )

    updated = await service.update_task(task_id, task_data)
    if not updated:
        raise _not_found(task_id)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: int, service: TaskServiceDep):
    """Delete a task"""
    deleted = await service.delete_task(task_id)
    if not deleted:
        raise _not_found(task_id)
