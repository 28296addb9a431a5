from fastapi import APIRouter, Depends, File, Response, UploadFile, status
from sqlalchemy.orm import Session

from modulyn.core.database import get_db
from modulyn.core.deps import get_current_user, require_admin
from modulyn.core.errors import AppError
from modulyn.core.logging import get_logger
from modulyn.core.responses import success
from modulyn.models.call import ColdCall
from modulyn.models.user import User, UserRole
from modulyn.schemas.call import ColdCallAssign, ColdCallCreate, ColdCallIds, ColdCallResponse, ColdCallUpdate
from modulyn.schemas.lead import LeadResponse
from modulyn.services.audit import audit_event
from modulyn.services.cold_calls import cold_calls_csv, convert_to_lead, parse_cold_calls_csv
from modulyn.services.notifications import create_notification
from modulyn.services.records import check_reference, get_owned, reject_cleared

router = APIRouter(prefix="/cold-calls", tags=["cold-calls"])
logger = get_logger(__name__)


def _dump(row: ColdCall) -> dict:
    return ColdCallResponse.model_validate(row).model_dump(mode="json")


def _visible_cold_call(db: Session, cold_call_id: int, current_user: User) -> ColdCall:
    row = get_owned(db, ColdCall, cold_call_id, current_user.tenant_id, "cold call")
    if current_user.role == UserRole.agent and row.agent_id != current_user.id:
        raise AppError("Agents can only access cold calls assigned to them", 403)
    return row


def _audit(db: Session, current: User, action: str, details: str) -> None:
    audit_event(db, action, "cold_call", user_id=current.id, tenant_id=current.tenant_id, details=details)


def _notify_agent(db: Session, row: ColdCall, notification_type: str, title: str, message: str) -> None:
    if not row.agent_id:
        return
    create_notification(
        db,
        tenant_id=row.tenant_id,
        user_id=row.agent_id,
        notification_type=notification_type,
        title=title,
        message=message,
        related_to_type="cold_call",
        related_to_id=row.id,
    )


@router.get("")
def list_cold_calls(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    query = db.query(ColdCall).filter(ColdCall.tenant_id == current_user.tenant_id)
    if current_user.role == UserRole.agent:
        query = query.filter(ColdCall.agent_id == current_user.id)
    rows = query.order_by(ColdCall.created_at.desc(), ColdCall.id.desc()).all()
    return success(coldCalls=[_dump(row) for row in rows])


@router.get("/export/csv")
def export_cold_calls(db: Session = Depends(get_db), current: User = Depends(require_admin)):
    csv_data = cold_calls_csv(db, current.tenant_id)
    return Response(
        content=csv_data,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=cold_calls_export.csv"},
    )


@router.post("/import/csv")
def import_cold_calls(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current: User = Depends(require_admin),
):
    try:
        text = file.file.read().decode("utf-8-sig")
    except UnicodeDecodeError:
        raise AppError("CSV parse error: file is not UTF-8 text", 400)

    agent_ids = {uid for (uid,) in db.query(User.id).filter(User.tenant_id == current.tenant_id).all()}
    parsed, errors = parse_cold_calls_csv(text, agent_ids)
    for values in parsed:
        db.add(ColdCall(tenant_id=current.tenant_id, **values))
    db.commit()

    logger.info("Imported %d cold calls into tenant %s (%d rejected)", len(parsed), current.tenant_id, len(errors))
    _audit(db, current, "cold_call_import", f"imported={len(parsed)} errors={len(errors)}")
    return success(imported=len(parsed), parsed=len(parsed), errors=errors)


@router.post("/assign")
def assign_cold_calls(payload: ColdCallAssign, db: Session = Depends(get_db), current: User = Depends(require_admin)):
    check_reference(db, User, payload.agent_id, current.tenant_id, "Agent")
    rows = (
        db.query(ColdCall)
        .filter(ColdCall.tenant_id == current.tenant_id, ColdCall.id.in_(payload.ids))
        .order_by(ColdCall.id)
        .all()
    )
    for row in rows:
        row.agent_id = payload.agent_id
    db.commit()

    for row in rows:
        _notify_agent(
            db,
            row,
            "cold_call_assigned",
            "Cold Call Assigned",
            f"You have been assigned a new cold call ({row.name}).",
        )
    _audit(db, current, "cold_call_assign", f"agent_id={payload.agent_id} count={len(rows)}")
    return success(updated=len(rows))


@router.post("/bulk-delete")
def bulk_delete_cold_calls(payload: ColdCallIds, db: Session = Depends(get_db), current: User = Depends(require_admin)):
    deleted = (
        db.query(ColdCall)
        .filter(ColdCall.tenant_id == current.tenant_id, ColdCall.id.in_(payload.ids))
        .delete(synchronize_session=False)
    )
    db.commit()
    _audit(db, current, "cold_call_bulk_delete", f"count={deleted}")
    return success(deleted=deleted)


@router.get("/{cold_call_id}")
def get_cold_call(cold_call_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return success(coldCall=_dump(_visible_cold_call(db, cold_call_id, current_user)))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_cold_call(payload: ColdCallCreate, db: Session = Depends(get_db), current: User = Depends(require_admin)):
    check_reference(db, User, payload.agent_id, current.tenant_id, "Agent")
    row = ColdCall(tenant_id=current.tenant_id, **payload.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    _notify_agent(db, row, "cold_call_assigned", "Cold Call Assigned", f"You have been assigned a new cold call ({row.name}).")
    _audit(db, current, "cold_call_create", f"cold_call_id={row.id}")
    return success(coldCall=_dump(row))


@router.patch("/{cold_call_id}")
def update_cold_call(
    cold_call_id: int,
    payload: ColdCallUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    row = _visible_cold_call(db, cold_call_id, current_user)
    changes = payload.model_dump(exclude_unset=True)
    reject_cleared(changes, "name", "phone", "status")
    if current_user.role == UserRole.agent and "agent_id" in changes:
        raise AppError("Agents cannot reassign cold calls", 403)
    check_reference(db, User, changes.get("agent_id"), current_user.tenant_id, "Agent")

    for key, value in changes.items():
        setattr(row, key, value)
    db.commit()
    db.refresh(row)

    _notify_agent(db, row, "cold_call_updated", "Cold Call Updated", f"A cold call ({row.name}) has been updated.")
    _audit(db, current_user, "cold_call_update", f"cold_call_id={row.id}")
    return success(coldCall=_dump(row))


@router.delete("/{cold_call_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_cold_call(cold_call_id: int, db: Session = Depends(get_db), current: User = Depends(require_admin)):
    row = get_owned(db, ColdCall, cold_call_id, current.tenant_id, "cold call")
    db.delete(row)
    db.commit()
    _audit(db, current, "cold_call_delete", f"cold_call_id={cold_call_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{cold_call_id}/convert")
def convert_cold_call(cold_call_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    row = _visible_cold_call(db, cold_call_id, current_user)
    lead = convert_to_lead(db, row, current_user)

    if lead.assigned_to:
        create_notification(
            db,
            tenant_id=lead.tenant_id,
            user_id=lead.assigned_to,
            notification_type="lead_created",
            title="New Lead Assigned",
            message=f"A new lead ({lead.full_name}) has been assigned to you.",
            related_to_type="lead",
            related_to_id=lead.id,
        )
    _audit(db, current_user, "cold_call_convert", f"cold_call_id={row.id} lead_id={lead.id}")
    return success(lead=LeadResponse.model_validate(lead).model_dump(mode="json"))
