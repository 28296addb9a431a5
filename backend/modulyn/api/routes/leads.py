from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from modulyn.core.database import get_db
from modulyn.core.deps import get_current_user
from modulyn.core.errors import AppError
from modulyn.core.logging import get_logger
from modulyn.core.responses import success
from modulyn.models.lead import Lead
from modulyn.models.property import Property
from modulyn.models.user import User, UserRole
from modulyn.schemas.lead import LeadCreate, LeadResponse, LeadUpdate
from modulyn.schemas.property import PropertyResponse
from modulyn.services.assignment import assign_best_agent
from modulyn.services.audit import audit_event
from modulyn.services.matching import match_properties_to_lead, preferences_empty
from modulyn.services.notifications import create_notification

router = APIRouter(prefix="/leads", tags=["leads"])
logger = get_logger(__name__)


def _dump(lead: Lead) -> dict:
    return LeadResponse.model_validate(lead).model_dump(mode="json")


def _visible_lead(db: Session, lead_id: int, current_user: User) -> Lead:
    lead = db.query(Lead).filter(Lead.id == lead_id, Lead.tenant_id == current_user.tenant_id).first()
    if not lead:
        raise AppError("No lead found with that ID", 404)
    if current_user.role == UserRole.agent and lead.assigned_to != current_user.id:
        raise AppError("Agents can only access leads assigned to them", 403)
    return lead


def _check_assignee(db: Session, tenant_id: int, user_id: int | None) -> None:
    if user_id is None:
        return
    exists = db.query(User.id).filter(User.id == user_id, User.tenant_id == tenant_id).first()
    if not exists:
        raise AppError("Assigned user not found", 400)


def _notify_assignee(db: Session, lead: Lead, notification_type: str, title: str, message: str) -> None:
    if not lead.assigned_to:
        return
    create_notification(
        db,
        tenant_id=lead.tenant_id,
        user_id=lead.assigned_to,
        notification_type=notification_type,
        title=title,
        message=message,
        related_to_type="lead",
        related_to_id=lead.id,
    )


@router.get("")
def list_leads(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    query = db.query(Lead).filter(Lead.tenant_id == current_user.tenant_id)
    if current_user.role == UserRole.agent:
        query = query.filter(Lead.assigned_to == current_user.id)
    leads = query.order_by(Lead.created_at.desc(), Lead.id.desc()).all()
    return success(leads=[_dump(lead) for lead in leads])


@router.get("/{lead_id}")
def get_lead(lead_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return success(lead=_dump(_visible_lead(db, lead_id, current_user)))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_lead(payload: LeadCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    _check_assignee(db, current_user.tenant_id, payload.assigned_to)

    lead = Lead(tenant_id=current_user.tenant_id, **payload.model_dump())
    db.add(lead)
    db.flush()

    if lead.assigned_to is None:
        lead.assigned_to = assign_best_agent(db, lead)

    db.commit()
    db.refresh(lead)

    _notify_assignee(
        db,
        lead,
        "lead_created",
        "New Lead Assigned",
        f"A new lead ({lead.full_name}) has been assigned to you.",
    )
    audit_event(db, "lead_create", "lead", user_id=current_user.id, tenant_id=current_user.tenant_id, details=f"lead_id={lead.id}")
    return success(lead=_dump(lead))


@router.patch("/{lead_id}")
def update_lead(
    lead_id: int,
    payload: LeadUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    lead = _visible_lead(db, lead_id, current_user)
    changes = payload.model_dump(exclude_unset=True)
    for required in ("first_name", "last_name", "email", "status"):
        if required in changes and changes[required] is None:
            raise AppError(f"{required} cannot be empty", 400)
    if current_user.role == UserRole.agent and "assigned_to" in changes:
        raise AppError("Agents cannot reassign leads", 403)
    if "assigned_to" in changes:
        _check_assignee(db, current_user.tenant_id, changes["assigned_to"])

    for key, value in changes.items():
        setattr(lead, key, value)

    db.commit()
    db.refresh(lead)

    _notify_assignee(db, lead, "lead_updated", "Lead Updated", f"Lead ({lead.full_name}) has been updated.")
    audit_event(db, "lead_update", "lead", user_id=current_user.id, tenant_id=current_user.tenant_id, details=f"lead_id={lead.id}")
    return success(lead=_dump(lead))


@router.delete("/{lead_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_lead(lead_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    lead = _visible_lead(db, lead_id, current_user)
    if current_user.role == UserRole.agent:
        raise AppError("Forbidden", 403)
    db.delete(lead)
    db.commit()
    audit_event(db, "lead_delete", "lead", user_id=current_user.id, tenant_id=current_user.tenant_id, details=f"lead_id={lead_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{lead_id}/matches")
def property_matches(lead_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    lead = _visible_lead(db, lead_id, current_user)

    if preferences_empty(lead):
        return success(matches=[], preferences_empty=True)

    properties = (
        db.query(Property)
        .filter(Property.tenant_id == current_user.tenant_id)
        .order_by(Property.created_at.desc(), Property.id.desc())
        .all()
    )
    ranked = match_properties_to_lead(properties, lead)
    logger.debug("Lead %s matched %d of %d properties", lead.id, len(ranked), len(properties))

    matches = [
        scored.to_dict(PropertyResponse.model_validate(scored.property).model_dump(mode="json"))
        for scored in ranked
    ]
    return success(matches=matches, preferences_empty=False)
