from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from modulyn.core.database import get_db
from modulyn.core.deps import get_current_user
from modulyn.core.errors import AppError
from modulyn.core.logging import get_logger
from modulyn.core.responses import success
from modulyn.models.lead import Lead
from modulyn.models.project import Project
from modulyn.models.task import Task, TaskComment
from modulyn.models.user import User, UserRole
from modulyn.schemas.task import TaskCommentCreate, TaskCommentResponse, TaskCreate, TaskDetail, TaskResponse, TaskUpdate
from modulyn.services.audit import audit_event
from modulyn.services.notifications import create_notification
from modulyn.services.records import check_reference, get_owned, reject_cleared

router = APIRouter(prefix="/tasks", tags=["tasks"])
logger = get_logger(__name__)


def _dump(task: Task) -> dict:
    return TaskResponse.model_validate(task).model_dump(mode="json")


def _visible_task(db: Session, task_id: int, current_user: User) -> Task:
    task = get_owned(db, Task, task_id, current_user.tenant_id, "task")
    if current_user.role == UserRole.agent and current_user.id not in (task.assigned_to, task.created_by):
        raise AppError("Agents can only access their own tasks", 403)
    return task


def _check_refs(db: Session, tenant_id: int, values: dict) -> None:
    check_reference(db, User, values.get("assigned_to"), tenant_id, "Assigned user")
    check_reference(db, Lead, values.get("lead_id"), tenant_id, "Lead")
    check_reference(db, Project, values.get("project_id"), tenant_id, "Project")


def _notify_assignee(db: Session, task: Task, notification_type: str, title: str, message: str) -> None:
    if not task.assigned_to:
        return
    create_notification(
        db,
        tenant_id=task.tenant_id,
        user_id=task.assigned_to,
        notification_type=notification_type,
        title=title,
        message=message,
        related_to_type="task",
        related_to_id=task.id,
    )


@router.get("")
def list_tasks(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    query = db.query(Task).filter(Task.tenant_id == current_user.tenant_id)
    if current_user.role == UserRole.agent:
        query = query.filter(or_(Task.assigned_to == current_user.id, Task.created_by == current_user.id))
    # Soonest due first; undated tasks last.
    tasks = query.order_by(Task.due_date.is_(None), Task.due_date, Task.id).all()
    return success(tasks=[_dump(task) for task in tasks])


@router.get("/{task_id}")
def get_task(task_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    task = _visible_task(db, task_id, current_user)
    return success(task=TaskDetail.model_validate(task).model_dump(mode="json"))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_task(payload: TaskCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    values = payload.model_dump()
    _check_refs(db, current_user.tenant_id, values)

    task = Task(tenant_id=current_user.tenant_id, created_by=current_user.id, **values)
    db.add(task)
    db.commit()
    db.refresh(task)

    _notify_assignee(db, task, "task_assigned", "Task Assigned", f"A new task ({task.title}) has been assigned to you.")
    audit_event(db, "task_create", "task", user_id=current_user.id, tenant_id=current_user.tenant_id, details=f"task_id={task.id}")
    return success(task=_dump(task))


@router.patch("/{task_id}")
def update_task(
    task_id: int,
    payload: TaskUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    task = _visible_task(db, task_id, current_user)
    changes = payload.model_dump(exclude_unset=True)
    reject_cleared(changes, "title", "description", "status", "priority", "tags")
    _check_refs(db, current_user.tenant_id, changes)

    for key, value in changes.items():
        setattr(task, key, value)

    db.commit()
    db.refresh(task)

    _notify_assignee(db, task, "task_updated", "Task Updated", f"Task ({task.title}) has been updated.")
    audit_event(db, "task_update", "task", user_id=current_user.id, tenant_id=current_user.tenant_id, details=f"task_id={task.id}")
    return success(task=_dump(task))


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(task_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    task = _visible_task(db, task_id, current_user)
    if current_user.role == UserRole.agent and task.created_by != current_user.id:
        raise AppError("Agents can only delete tasks they created", 403)
    db.delete(task)
    db.commit()
    audit_event(db, "task_delete", "task", user_id=current_user.id, tenant_id=current_user.tenant_id, details=f"task_id={task_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{task_id}/comments", status_code=status.HTTP_201_CREATED)
def add_comment(
    task_id: int,
    payload: TaskCommentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    task = _visible_task(db, task_id, current_user)
    comment = TaskComment(task_id=task.id, user_id=current_user.id, content=payload.content)
    db.add(comment)
    db.commit()
    db.refresh(comment)

    if task.assigned_to != current_user.id:
        _notify_assignee(db, task, "task_commented", "Task Commented", f"A comment was added to your task ({task.title}).")
    return success(comment=TaskCommentResponse.model_validate(comment).model_dump(mode="json"))


@router.delete("/{task_id}/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_comment(
    task_id: int,
    comment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    task = _visible_task(db, task_id, current_user)
    comment = db.query(TaskComment).filter(TaskComment.id == comment_id, TaskComment.task_id == task.id).first()
    if not comment:
        raise AppError("No comment found with that ID", 404)
    if current_user.role == UserRole.agent and comment.user_id != current_user.id:
        raise AppError("Agents can only delete their own comments", 403)
    db.delete(comment)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
