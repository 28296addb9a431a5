from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from modulyn.core.database import get_db
from modulyn.core.deps import get_current_user, require_roles
from modulyn.core.errors import AppError
from modulyn.core.responses import success
from modulyn.models.project import Project, ProjectTeamMember
from modulyn.models.user import User, UserRole
from modulyn.schemas.project import ProjectCreate, ProjectResponse, ProjectUpdate, TeamMemberCreate, TeamMemberResponse
from modulyn.services.audit import audit_event
from modulyn.services.records import check_reference, get_owned, reject_cleared

router = APIRouter(prefix="/projects", tags=["projects"])

require_editor = require_roles(UserRole.master, UserRole.admin, UserRole.manager)


def _dump(project: Project) -> dict:
    return ProjectResponse.model_validate(project).model_dump(mode="json")


def _audit(db: Session, current: User, action: str, details: str) -> None:
    audit_event(db, action, "project", user_id=current.id, tenant_id=current.tenant_id, details=details)


@router.get("")
def list_projects(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    rows = (
        db.query(Project)
        .filter(Project.tenant_id == current_user.tenant_id)
        .order_by(Project.created_at.desc(), Project.id.desc())
        .all()
    )
    return success(projects=[_dump(p) for p in rows])


@router.get("/{project_id}")
def get_project(project_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return success(project=_dump(get_owned(db, Project, project_id, current_user.tenant_id, "project")))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_project(payload: ProjectCreate, db: Session = Depends(get_db), current: User = Depends(require_editor)):
    project = Project(tenant_id=current.tenant_id, **payload.model_dump())
    db.add(project)
    db.commit()
    db.refresh(project)
    _audit(db, current, "project_create", f"project_id={project.id}")
    return success(project=_dump(project))


@router.patch("/{project_id}")
def update_project(
    project_id: int,
    payload: ProjectUpdate,
    db: Session = Depends(get_db),
    current: User = Depends(require_editor),
):
    project = get_owned(db, Project, project_id, current.tenant_id, "project")
    changes = payload.model_dump(exclude_unset=True)
    reject_cleared(changes, "name", "description", "status")
    for key, value in changes.items():
        setattr(project, key, value)
    db.commit()
    db.refresh(project)
    _audit(db, current, "project_update", f"project_id={project.id}")
    return success(project=_dump(project))


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(project_id: int, db: Session = Depends(get_db), current: User = Depends(require_editor)):
    project = get_owned(db, Project, project_id, current.tenant_id, "project")
    db.delete(project)
    db.commit()
    _audit(db, current, "project_delete", f"project_id={project_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{project_id}/team-members", status_code=status.HTTP_201_CREATED)
def add_team_member(
    project_id: int,
    payload: TeamMemberCreate,
    db: Session = Depends(get_db),
    current: User = Depends(require_editor),
):
    project = get_owned(db, Project, project_id, current.tenant_id, "project")
    check_reference(db, User, payload.user_id, current.tenant_id, "User")
    exists = (
        db.query(ProjectTeamMember.id)
        .filter(ProjectTeamMember.project_id == project.id, ProjectTeamMember.user_id == payload.user_id)
        .first()
    )
    if exists:
        raise AppError("User is already on this project", 400)

    member = ProjectTeamMember(project_id=project.id, user_id=payload.user_id, role=payload.role)
    db.add(member)
    db.commit()
    db.refresh(member)
    _audit(db, current, "project_member_add", f"project_id={project.id} user_id={payload.user_id}")
    return success(teamMember=TeamMemberResponse.model_validate(member).model_dump(mode="json"))


@router.delete("/{project_id}/team-members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_team_member(
    project_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    current: User = Depends(require_editor),
):
    project = get_owned(db, Project, project_id, current.tenant_id, "project")
    member = (
        db.query(ProjectTeamMember)
        .filter(ProjectTeamMember.project_id == project.id, ProjectTeamMember.user_id == user_id)
        .first()
    )
    if not member:
        raise AppError("No team member found with that ID", 404)
    db.delete(member)
    db.commit()
    _audit(db, current, "project_member_remove", f"project_id={project.id} user_id={user_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
