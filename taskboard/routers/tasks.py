from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status

from ..api.deps import get_current_identity, get_task_service, parse_progress
from ..models import Identity, Task, TaskCreate, TaskDeleted, TaskSummary, TaskUpdate
from ..tasks import TaskService

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("", response_model=List[Task])
async def list_tasks(
    progress: Optional[str] = Depends(parse_progress),
    identity: Identity = Depends(get_current_identity),
    service: TaskService = Depends(get_task_service),
):
    return service.list(identity.id, progress=progress)


# Declared before /{task_id} so "summary" is not parsed as an id.
@router.get("/summary", response_model=TaskSummary)
async def task_summary(
    identity: Identity = Depends(get_current_identity),
    service: TaskService = Depends(get_task_service),
):
    return service.summary(identity.id)


@router.post("", response_model=Task, status_code=status.HTTP_201_CREATED)
async def create_task(
    item: TaskCreate,
    response: Response,
    identity: Identity = Depends(get_current_identity),
    service: TaskService = Depends(get_task_service),
):
    task = service.create(identity.id, item)
    response.headers["Location"] = f"/tasks/{task.id}"
    return task


@router.get("/{task_id}", response_model=Task)
async def get_task(
    task_id: int,
    identity: Identity = Depends(get_current_identity),
    service: TaskService = Depends(get_task_service),
):
    return service.get(identity.id, task_id)


@router.put("/{task_id}", response_model=Task)
async def update_task(
    task_id: int,
    item: TaskUpdate,
    identity: Identity = Depends(get_current_identity),
    service: TaskService = Depends(get_task_service),
):
    return service.update(identity.id, task_id, item)


@router.delete("/{task_id}", response_model=TaskDeleted)
async def delete_task(
    task_id: int,
    identity: Identity = Depends(get_current_identity),
    service: TaskService = Depends(get_task_service),
):
    removed = service.delete(identity.id, task_id)
    return TaskDeleted(message="Task deleted successfully", task=removed)
