from datetime import datetime

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from modulyn.api.routes.auth import client_ip, issue_tokens
from modulyn.core.database import get_db
from modulyn.core.deps import get_current_user, require_admin
from modulyn.core.errors import AppError
from modulyn.core.logging import get_logger
from modulyn.core.rate_limit import limiter
from modulyn.core.responses import success
from modulyn.core.security import get_password_hash, validate_password_strength
from modulyn.models.join_request import JoinRequest, JoinRequestStatus
from modulyn.models.tenant import Tenant
from modulyn.models.user import ADMIN_ROLES, User, UserRole
from modulyn.schemas.team import TeamUserResponse
from modulyn.schemas.tenant import JoinRequestResponse, TenantResponse, TenantSignup, TenantSummary
from modulyn.services.assignment import release_user_assignments
from modulyn.services.audit import audit_event
from modulyn.services.notifications import create_notification
from modulyn.services.tenants import SEARCHABLE_STATUSES, member_count, new_tenant, user_limits

router = APIRouter(prefix="/tenants", tags=["tenants"])
logger = get_logger(__name__)


def _tenant_payload(db: Session, tenant: Tenant) -> dict:
    data = TenantResponse.model_validate(tenant)
    data.member_count = member_count(db, tenant.id)
    return data.model_dump(mode="json")


@router.post("/signup", status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
def signup(request: Request, payload: TenantSignup, db: Session = Depends(get_db)):
    email = payload.email.lower()
    if db.query(User.id).filter(User.email == email).first():
        raise AppError("Email already registered", 400)

    if not validate_password_strength(payload.password):
        raise AppError("Weak password. Use 8+ chars with upper/lowercase and a number.", 400)

    tenant = new_tenant(db, payload.company_name, payload.plan)
    first, _, last = payload.full_name.strip().partition(" ")
    user = User(
        tenant_id=tenant.id,
        email=email,
        full_name=payload.full_name.strip(),
        first_name=first or None,
        last_name=last or None,
        hashed_password=get_password_hash(payload.password),
        role=UserRole.master,
    )
    db.add(user)
    db.commit()
    db.refresh(tenant)
    db.refresh(user)

    logger.info("Created tenant %s (%s) with master user %s", tenant.id, tenant.slug, user.id)
    audit_event(db, "tenant_signup", "tenant", user_id=user.id, tenant_id=tenant.id, ip_address=client_ip(request))
    return success(
        tenant=_tenant_payload(db, tenant),
        user=TeamUserResponse.model_validate(user).model_dump(mode="json"),
        tokens=issue_tokens(user).model_dump(),
    )


@router.get("/search")
def search_tenants(q: str = Query(default=""), limit: int = Query(default=10), db: Session = Depends(get_db)):
    query = q.strip()
    if len(query) < 2:
        raise AppError("Query must be at least 2 characters long", 400)
    pattern = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

    rows = (
        db.query(Tenant)
        .filter(Tenant.name.ilike(f"%{pattern}%", escape="\\"), Tenant.subscription_status.in_(SEARCHABLE_STATUSES))
        .order_by(Tenant.name)
        .limit(min(max(limit, 1), 50))
        .all()
    )
    tenants = [
        TenantSummary(
            id=t.id,
            name=t.name,
            slug=t.slug,
            logo_url=t.logo_url,
            member_count=member_count(db, t.id),
        ).model_dump()
        for t in rows
    ]
    return success(tenants=tenants)


@router.get("/{tenant_id}")
def get_tenant(tenant_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    if tenant_id != current_user.tenant_id:
        raise AppError("Company not found", 404)
    tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
    if not tenant:
        raise AppError("Company not found", 404)
    return success(tenant=_tenant_payload(db, tenant))


@router.get("/{tenant_id}/check-limits")
def check_limits(tenant_id: int, db: Session = Depends(get_db)):
    tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
    if not tenant:
        raise AppError("Company not found", 404)
    return success(limits=user_limits(db, tenant))


# --- join requests ---


def _own_tenant(db: Session, tenant_id: int, current: User) -> Tenant:
    if tenant_id != current.tenant_id:
        raise AppError("Company not found", 404)
    return db.query(Tenant).filter(Tenant.id == tenant_id).one()


def _pending_request(db: Session, tenant_id: int, request_id: int) -> JoinRequest:
    row = db.query(JoinRequest).filter(JoinRequest.id == request_id, JoinRequest.tenant_id == tenant_id).first()
    if not row:
        raise AppError("No join request found with that ID", 404)
    if row.status != JoinRequestStatus.pending:
        raise AppError("Join request has already been reviewed", 400)
    return row


def _dump_request(row: JoinRequest) -> dict:
    return JoinRequestResponse.model_validate(row).model_dump(mode="json")


@router.post("/{tenant_id}/join-requests", status_code=status.HTTP_201_CREATED)
def request_to_join(tenant_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
    if not tenant or tenant.subscription_status not in SEARCHABLE_STATUSES:
        raise AppError("Company not found", 404)
    if current_user.tenant_id == tenant.id:
        raise AppError("You are already a member of this company", 400)
    if current_user.role == UserRole.master:
        raise AppError("Master users cannot move to another company", 400)
    duplicate = (
        db.query(JoinRequest.id)
        .filter(
            JoinRequest.tenant_id == tenant.id,
            JoinRequest.user_id == current_user.id,
            JoinRequest.status == JoinRequestStatus.pending,
        )
        .first()
    )
    if duplicate:
        raise AppError("A join request for this company is already pending", 400)

    row = JoinRequest(tenant_id=tenant.id, user_id=current_user.id)
    db.add(row)
    db.commit()
    db.refresh(row)

    admins = db.query(User).filter(User.tenant_id == tenant.id, User.role.in_(ADMIN_ROLES), User.is_active == True).all()
    for admin in admins:
        create_notification(
            db,
            tenant_id=tenant.id,
            user_id=admin.id,
            notification_type="join_request",
            title="Join Request",
            message=f"{current_user.full_name} ({current_user.email}) asked to join {tenant.name}.",
            related_to_type="join_request",
            related_to_id=row.id,
        )
    audit_event(db, "join_request_create", "tenant", user_id=current_user.id, tenant_id=tenant.id, details=f"join_request_id={row.id}")
    return success(joinRequest=_dump_request(row))


@router.get("/{tenant_id}/join-requests")
def list_join_requests(
    tenant_id: int,
    status_filter: JoinRequestStatus | None = Query(default=JoinRequestStatus.pending, alias="status"),
    db: Session = Depends(get_db),
    current: User = Depends(require_admin),
):
    _own_tenant(db, tenant_id, current)
    query = db.query(JoinRequest).filter(JoinRequest.tenant_id == tenant_id)
    if status_filter is not None:
        query = query.filter(JoinRequest.status == status_filter)
    rows = query.order_by(JoinRequest.created_at, JoinRequest.id).all()
    return success(joinRequests=[_dump_request(row) for row in rows])


@router.post("/{tenant_id}/join-requests/{request_id}/approve")
def approve_join_request(
    tenant_id: int,
    request_id: int,
    db: Session = Depends(get_db),
    current: User = Depends(require_admin),
):
    tenant = _own_tenant(db, tenant_id, current)
    row = _pending_request(db, tenant_id, request_id)
    limits = user_limits(db, tenant)
    if not limits["can_add_users"]:
        raise AppError(f"User limit reached for the {limits['plan_name']} plan", 403, limits=limits)

    user = db.query(User).filter(User.id == row.user_id).one()
    previous_tenant = user.tenant_id
    release_user_assignments(db, user.id)
    user.tenant_id = tenant.id
    user.role = UserRole.agent
    user.designation_id = None
    user.reporting_to = None
    # Tokens carry the tenant id.
    user.session_version += 1
    row.status = JoinRequestStatus.approved
    row.reviewed_by = current.id
    row.reviewed_at = datetime.utcnow()
    db.commit()
    db.refresh(row)

    logger.info("User %s moved from tenant %s to tenant %s", user.id, previous_tenant, tenant.id)
    create_notification(
        db,
        tenant_id=tenant.id,
        user_id=user.id,
        notification_type="join_request_approved",
        title="Join Request Approved",
        message=f"You are now a member of {tenant.name}.",
        related_to_type="join_request",
        related_to_id=row.id,
    )
    audit_event(db, "join_request_approve", "tenant", user_id=current.id, tenant_id=tenant.id, details=f"join_request_id={row.id}")
    return success(joinRequest=_dump_request(row))


@router.post("/{tenant_id}/join-requests/{request_id}/reject")
def reject_join_request(
    tenant_id: int,
    request_id: int,
    db: Session = Depends(get_db),
    current: User = Depends(require_admin),
):
    tenant = _own_tenant(db, tenant_id, current)
    row = _pending_request(db, tenant_id, request_id)
    row.status = JoinRequestStatus.rejected
    row.reviewed_by = current.id
    row.reviewed_at = datetime.utcnow()
    db.commit()
    db.refresh(row)

    requester = db.query(User).filter(User.id == row.user_id).one()
    create_notification(
        db,
        tenant_id=requester.tenant_id,
        user_id=requester.id,
        notification_type="join_request_rejected",
        title="Join Request Declined",
        message=f"Your request to join {tenant.name} was declined.",
        related_to_type="join_request",
        related_to_id=row.id,
    )
    audit_event(db, "join_request_reject", "tenant", user_id=current.id, tenant_id=tenant_id, details=f"join_request_id={row.id}")
    return success(joinRequest=_dump_request(row))
