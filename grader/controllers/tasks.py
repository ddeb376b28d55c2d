from fastapi import APIRouter

from grader.dependencies import Catalog
from grader.models.tasks import TaskDetail, TaskListResponse, TaskSummary

router = APIRouter()


@router.get("/tasks", response_model=TaskListResponse)
async def list_tasks(catalog: Catalog) -> TaskListResponse:
    tasks = [
        TaskSummary(
            id=task.id,
            has_base_code=task.base_source is not None,
            has_description=task.description is not None,
        )
        for task in catalog
    ]
    return TaskListResponse(tasks=tasks, count=len(tasks))


@router.get("/tasks/{task_id}", response_model=TaskDetail)
async def get_task(task_id: str, catalog: Catalog) -> TaskDetail:
    task = catalog.get(task_id)
    return TaskDetail(
        id=task.id,
        description=task.description,
        base_code=task.base_source.decode("utf-8", errors="replace") if task.base_source is not None else None,
    )
