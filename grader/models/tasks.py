from pydantic import BaseModel


class TaskSummary(BaseModel):
    id: str
    has_base_code: bool
    has_description: bool


class TaskListResponse(BaseModel):
    tasks: list[TaskSummary]
    count: int


class TaskDetail(BaseModel):
    id: str
    description: str | None = None
    base_code: str | None = None
