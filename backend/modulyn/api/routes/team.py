from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from modulyn.core.database import get_db
from modulyn.core.deps import require_admin
from modulyn.core.errors import AppError
from modulyn.core.logging import get_logger
from modulyn.core.responses import success
from modulyn.core.security import get_password_hash, validate_password_strength
from modulyn.models.team import Designation, Team, TeamHierarchy, TeamRevenue
from modulyn.models.tenant import Tenant
from modulyn.models.user import User, UserRole
from modulyn.schemas.team import (
    DesignationCreate,
    DesignationResponse,
    DesignationUpdate,
    TeamCreate,
    TeamHierarchyCreate,
    TeamHierarchyResponse,
    TeamHierarchyUpdate,
    TeamResponse,
    TeamRevenueCreate,
    TeamRevenueResponse,
    TeamRevenueUpdate,
    TeamUpdate,
    TeamUserCreate,
    TeamUserResponse,
    TeamUserUpdate,
)
from modulyn.services.assignment import release_user_assignments
from modulyn.services.audit import audit_event
from modulyn.services.tenants import user_limits

router = APIRouter(prefix="/team", tags=["team"])
logger = get_logger(__name__)


def _owned(db: Session, model, row_id: int, tenant_id: int, label: str):
    row = db.query(model).filter(model.id == row_id, model.tenant_id == tenant_id).first()
    if not row:
        raise AppError(f"No {label} found with that ID", 404)
    return row


def _apply(row, changes: dict) -> None:
    for key, value in changes.items():
        setattr(row, key, value)


def _audit(db: Session, current: User, action: str, details: str) -> None:
    audit_event(db, action, "team", user_id=current.id, tenant_id=current.tenant_id, details=details)


# --- designations ---


@router.get("/designations")
def list_designations(db: Session = Depends(get_db), current: User = Depends(require_admin)):
    rows = db.query(Designation).filter(Designation.tenant_id == current.tenant_id).order_by(Designation.name).all()
    return success(designations=[DesignationResponse.model_validate(r).model_dump(mode="json") for r in rows])


@router.post("/designations", status_code=status.HTTP_201_CREATED)
def create_designation(payload: DesignationCreate, db: Session = Depends(get_db), current: User = Depends(require_admin)):
    row = Designation(tenant_id=current.tenant_id, **payload.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    _audit(db, current, "designation_create", f"designation_id={row.id}")
    return success(designation=DesignationResponse.model_validate(row).model_dump(mode="json"))


@router.patch("/designations/{designation_id}")
def update_designation(
    designation_id: int,
    payload: DesignationUpdate,
    db: Session = Depends(get_db),
    current: User = Depends(require_admin),
):
    row = _owned(db, Designation, designation_id, current.tenant_id, "designation")
    _apply(row, payload.model_dump(exclude_unset=True, exclude_none=True))
    db.commit()
    db.refresh(row)
    _audit(db, current, "designation_update", f"designation_id={row.id}")
    return success(designation=DesignationResponse.model_validate(row).model_dump(mode="json"))


@router.delete("/designations/{designation_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_designation(designation_id: int, db: Session = Depends(get_db), current: User = Depends(require_admin)):
    row = _owned(db, Designation, designation_id, current.tenant_id, "designation")
    db.query(User).filter(User.designation_id == row.id).update({User.designation_id: None})
    db.delete(row)
    db.commit()
    _audit(db, current, "designation_delete", f"designation_id={designation_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- teams ---


@router.get("/teams")
def list_teams(db: Session = Depends(get_db), current: User = Depends(require_admin)):
    rows = db.query(Team).filter(Team.tenant_id == current.tenant_id).order_by(Team.name).all()
    return success(teams=[TeamResponse.model_validate(r).model_dump(mode="json") for r in rows])


@router.post("/teams", status_code=status.HTTP_201_CREATED)
def create_team(payload: TeamCreate, db: Session = Depends(get_db), current: User = Depends(require_admin)):
    row = Team(tenant_id=current.tenant_id, **payload.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    _audit(db, current, "team_create", f"team_id={row.id}")
    return success(team=TeamResponse.model_validate(row).model_dump(mode="json"))


@router.patch("/teams/{team_id}")
def update_team(team_id: int, payload: TeamUpdate, db: Session = Depends(get_db), current: User = Depends(require_admin)):
    row = _owned(db, Team, team_id, current.tenant_id, "team")
    _apply(row, payload.model_dump(exclude_unset=True, exclude_none=True))
    db.commit()
    db.refresh(row)
    _audit(db, current, "team_update", f"team_id={row.id}")
    return success(team=TeamResponse.model_validate(row).model_dump(mode="json"))


@router.delete("/teams/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_team(team_id: int, db: Session = Depends(get_db), current: User = Depends(require_admin)):
    row = _owned(db, Team, team_id, current.tenant_id, "team")
    db.query(TeamHierarchy).filter(TeamHierarchy.team_id == row.id).delete(synchronize_session=False)
    db.query(TeamHierarchy).filter(TeamHierarchy.parent_team_id == row.id).update(
        {TeamHierarchy.parent_team_id: None}, synchronize_session=False
    )
    db.query(TeamRevenue).filter(TeamRevenue.team_id == row.id).delete(synchronize_session=False)
    db.delete(row)
    db.commit()
    _audit(db, current, "team_delete", f"team_id={team_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- team hierarchy ---


def _check_hierarchy(db: Session, tenant_id: int, team_id: int, parent_team_id: int | None) -> None:
    _owned(db, Team, team_id, tenant_id, "team")
    if parent_team_id is None:
        return
    if parent_team_id == team_id:
        raise AppError("A team cannot be its own parent", 400)
    _owned(db, Team, parent_team_id, tenant_id, "parent team")


@router.get("/team-hierarchy")
def list_team_hierarchy(db: Session = Depends(get_db), current: User = Depends(require_admin)):
    rows = db.query(TeamHierarchy).filter(TeamHierarchy.tenant_id == current.tenant_id).order_by(TeamHierarchy.id).all()
    return success(teamHierarchy=[TeamHierarchyResponse.model_validate(r).model_dump(mode="json") for r in rows])


@router.post("/team-hierarchy", status_code=status.HTTP_201_CREATED)
def create_team_hierarchy(payload: TeamHierarchyCreate, db: Session = Depends(get_db), current: User = Depends(require_admin)):
    _check_hierarchy(db, current.tenant_id, payload.team_id, payload.parent_team_id)
    row = TeamHierarchy(tenant_id=current.tenant_id, **payload.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    _audit(db, current, "team_hierarchy_create", f"team_hierarchy_id={row.id}")
    return success(teamHierarchy=TeamHierarchyResponse.model_validate(row).model_dump(mode="json"))


@router.patch("/team-hierarchy/{hierarchy_id}")
def update_team_hierarchy(
    hierarchy_id: int,
    payload: TeamHierarchyUpdate,
    db: Session = Depends(get_db),
    current: User = Depends(require_admin),
):
    row = _owned(db, TeamHierarchy, hierarchy_id, current.tenant_id, "team hierarchy")
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("team_id", row.team_id) is None:
        raise AppError("team_id required", 400)
    _check_hierarchy(db, current.tenant_id, changes.get("team_id", row.team_id), changes.get("parent_team_id", row.parent_team_id))
    _apply(row, changes)
    db.commit()
    db.refresh(row)
    _audit(db, current, "team_hierarchy_update", f"team_hierarchy_id={row.id}")
    return success(teamHierarchy=TeamHierarchyResponse.model_validate(row).model_dump(mode="json"))


@router.delete("/team-hierarchy/{hierarchy_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_team_hierarchy(hierarchy_id: int, db: Session = Depends(get_db), current: User = Depends(require_admin)):
    row = _owned(db, TeamHierarchy, hierarchy_id, current.tenant_id, "team hierarchy")
    db.delete(row)
    db.commit()
    _audit(db, current, "team_hierarchy_delete", f"team_hierarchy_id={hierarchy_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- team revenue ---


@router.get("/team-revenue")
def list_team_revenue(db: Session = Depends(get_db), current: User = Depends(require_admin)):
    rows = (
        db.query(TeamRevenue)
        .filter(TeamRevenue.tenant_id == current.tenant_id)
        .order_by(TeamRevenue.month.desc(), TeamRevenue.id)
        .all()
    )
    return success(teamRevenue=[TeamRevenueResponse.model_validate(r).model_dump(mode="json") for r in rows])


@router.post("/team-revenue", status_code=status.HTTP_201_CREATED)
def create_team_revenue(payload: TeamRevenueCreate, db: Session = Depends(get_db), current: User = Depends(require_admin)):
    _owned(db, Team, payload.team_id, current.tenant_id, "team")
    row = TeamRevenue(tenant_id=current.tenant_id, **payload.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    _audit(db, current, "team_revenue_create", f"team_revenue_id={row.id}")
    return success(teamRevenue=TeamRevenueResponse.model_validate(row).model_dump(mode="json"))


@router.patch("/team-revenue/{revenue_id}")
def update_team_revenue(
    revenue_id: int,
    payload: TeamRevenueUpdate,
    db: Session = Depends(get_db),
    current: User = Depends(require_admin),
):
    row = _owned(db, TeamRevenue, revenue_id, current.tenant_id, "team revenue record")
    changes = payload.model_dump(exclude_unset=True)
    for required in ("team_id", "month"):
        if required in changes and changes[required] is None:
            raise AppError("team_id and month required", 400)
    if "team_id" in changes:
        _owned(db, Team, changes["team_id"], current.tenant_id, "team")
    _apply(row, changes)
    db.commit()
    db.refresh(row)
    _audit(db, current, "team_revenue_update", f"team_revenue_id={row.id}")
    return success(teamRevenue=TeamRevenueResponse.model_validate(row).model_dump(mode="json"))


@router.delete("/team-revenue/{revenue_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_team_revenue(revenue_id: int, db: Session = Depends(get_db), current: User = Depends(require_admin)):
    row = _owned(db, TeamRevenue, revenue_id, current.tenant_id, "team revenue record")
    db.delete(row)
    db.commit()
    _audit(db, current, "team_revenue_delete", f"team_revenue_id={revenue_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- users ---


def _check_user_refs(db: Session, tenant_id: int, designation_id: int | None, reporting_to: int | None) -> None:
    if designation_id is not None:
        _owned(db, Designation, designation_id, tenant_id, "designation")
    if reporting_to is not None:
        _owned(db, User, reporting_to, tenant_id, "reporting person")


def _check_role_grant(current: User, role: UserRole | None) -> None:
    if role == UserRole.master and current.role != UserRole.master:
        raise AppError("Only a master user can grant the master role", 403)


def _dump_user(user: User) -> dict:
    return TeamUserResponse.model_validate(user).model_dump(mode="json")


@router.get("/users")
def list_users(db: Session = Depends(get_db), current: User = Depends(require_admin)):
    rows = (
        db.query(User)
        .filter(User.tenant_id == current.tenant_id)
        .order_by(User.created_at.desc(), User.id.desc())
        .all()
    )
    return success(users=[_dump_user(u) for u in rows])


@router.get("/users/{user_id}")
def get_user(user_id: int, db: Session = Depends(get_db), current: User = Depends(require_admin)):
    return success(user=_dump_user(_owned(db, User, user_id, current.tenant_id, "user")))


@router.post("/users", status_code=status.HTTP_201_CREATED)
def create_user(payload: TeamUserCreate, db: Session = Depends(get_db), current: User = Depends(require_admin)):
    tenant = db.query(Tenant).filter(Tenant.id == current.tenant_id).one()
    limits = user_limits(db, tenant)
    if not limits["can_add_users"]:
        raise AppError(f"User limit reached for the {limits['plan_name']} plan", 403, limits=limits)

    email = payload.email.lower()
    if db.query(User.id).filter(User.email == email).first():
        raise AppError("Email already registered", 400)
    if not validate_password_strength(payload.password):
        raise AppError("Weak password. Use 8+ chars with upper/lowercase and a number.", 400)
    _check_role_grant(current, payload.role)
    _check_user_refs(db, current.tenant_id, payload.designation_id, payload.reporting_to)

    full_name = " ".join(part for part in (payload.first_name, payload.last_name) if part) or email
    user = User(
        tenant_id=current.tenant_id,
        email=email,
        full_name=full_name,
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone=payload.phone,
        role=payload.role,
        designation_id=payload.designation_id,
        reporting_to=payload.reporting_to,
        hashed_password=get_password_hash(payload.password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User %s created user %s in tenant %s", current.id, user.id, current.tenant_id)
    _audit(db, current, "user_create", f"target_user_id={user.id}")
    return success(user=_dump_user(user))


@router.patch("/users/{user_id}")
def update_user(user_id: int, payload: TeamUserUpdate, db: Session = Depends(get_db), current: User = Depends(require_admin)):
    user = _owned(db, User, user_id, current.tenant_id, "user")
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("role") is None:
        changes.pop("role", None)
    if changes.get("is_active") is None:
        changes.pop("is_active", None)
    if user.role == UserRole.master and current.role != UserRole.master:
        raise AppError("Only a master user can modify a master user", 403)
    _check_role_grant(current, changes.get("role"))
    if user.id == current.id and (changes.get("is_active") is False or changes.get("role", current.role) != current.role):
        raise AppError("Cannot demote or disable yourself", 400)
    if changes.get("reporting_to") == user.id:
        raise AppError("A user cannot report to themselves", 400)
    _check_user_refs(db, current.tenant_id, changes.get("designation_id"), changes.get("reporting_to"))

    _apply(user, changes)
    if "first_name" in changes or "last_name" in changes:
        user.full_name = " ".join(part for part in (user.first_name, user.last_name) if part) or user.email
    if changes.get("is_active") is False:
        user.session_version += 1

    db.commit()
    db.refresh(user)
    _audit(db, current, "user_update", f"target_user_id={user.id}")
    return success(user=_dump_user(user))


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: int, db: Session = Depends(get_db), current: User = Depends(require_admin)):
    if current.id == user_id:
        raise AppError("Cannot delete yourself", 400)
    user = _owned(db, User, user_id, current.tenant_id, "user")
    if user.role == UserRole.master and current.role != UserRole.master:
        raise AppError("Only a master user can delete a master user", 403)

    release_user_assignments(db, user.id)
    db.delete(user)
    db.commit()
    logger.info("User %s deleted user %s in tenant %s", current.id, user_id, current.tenant_id)
    _audit(db, current, "user_delete", f"target_user_id={user_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
