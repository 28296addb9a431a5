from datetime import datetime
from pydantic import BaseModel, Field

from modulyn.models.task import TaskPriority, TaskStatus
from modulyn.schemas.common import UtcDatetime


class TaskBase(BaseModel):
    due_date: UtcDatetime | None = None
    assigned_to: int | None = None
    lead_id: int | None = None
    project_id: int | None = None


class TaskCreate(TaskBase):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    status: TaskStatus = TaskStatus.todo
    priority: TaskPriority = TaskPriority.medium
    tags: list[str] = Field(default_factory=list)


class TaskUpdate(TaskBase):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    tags: list[str] | None = None


class TaskCommentCreate(BaseModel):
    content: str = Field(min_length=1)


class TaskCommentResponse(BaseModel):
    id: int
    task_id: int
    user_id: int | None
    content: str
    created_at: datetime

    class Config:
        from_attributes = True


class TaskResponse(TaskBase):
    id: int
    tenant_id: int
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority
    tags: list[str]
    created_by: int | None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TaskDetail(TaskResponse):
    comments: list[TaskCommentResponse] = []
