from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from modulyn.core.database import get_db
from modulyn.core.deps import get_current_user
from modulyn.core.errors import AppError
from modulyn.core.responses import success
from modulyn.models.call import Call, CallNote
from modulyn.models.lead import Lead
from modulyn.models.project import Project
from modulyn.models.user import User, UserRole
from modulyn.schemas.call import CallCreate, CallDetail, CallNoteCreate, CallNoteResponse, CallResponse, CallUpdate
from modulyn.services.audit import audit_event
from modulyn.services.notifications import create_notification
from modulyn.services.records import check_reference, get_owned, reject_cleared

router = APIRouter(prefix="/calls", tags=["calls"])


def _dump(call: Call) -> dict:
    return CallResponse.model_validate(call).model_dump(mode="json")


def _visible_call(db: Session, call_id: int, current_user: User) -> Call:
    call = get_owned(db, Call, call_id, current_user.tenant_id, "call")
    if current_user.role == UserRole.agent and call.user_id != current_user.id:
        raise AppError("Agents can only access their own calls", 403)
    return call


def _check_refs(db: Session, tenant_id: int, values: dict) -> None:
    check_reference(db, User, values.get("user_id"), tenant_id, "User")
    check_reference(db, Lead, values.get("lead_id"), tenant_id, "Lead")
    check_reference(db, Project, values.get("project_id"), tenant_id, "Project")


def _notify_caller(db: Session, call: Call, notification_type: str, title: str, message: str) -> None:
    if not call.user_id:
        return
    create_notification(
        db,
        tenant_id=call.tenant_id,
        user_id=call.user_id,
        notification_type=notification_type,
        title=title,
        message=message,
        related_to_type="call",
        related_to_id=call.id,
    )


@router.get("")
def list_calls(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    query = db.query(Call).filter(Call.tenant_id == current_user.tenant_id)
    if current_user.role == UserRole.agent:
        query = query.filter(Call.user_id == current_user.id)
    calls = query.order_by(Call.created_at.desc(), Call.id.desc()).all()
    return success(calls=[_dump(call) for call in calls])


@router.get("/{call_id}")
def get_call(call_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    call = _visible_call(db, call_id, current_user)
    return success(call=CallDetail.model_validate(call).model_dump(mode="json"))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_call(payload: CallCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    values = payload.model_dump()
    if values["user_id"] is None or current_user.role == UserRole.agent:
        values["user_id"] = current_user.id
    _check_refs(db, current_user.tenant_id, values)

    call = Call(tenant_id=current_user.tenant_id, **values)
    db.add(call)
    db.commit()
    db.refresh(call)

    _notify_caller(db, call, "call_scheduled", "Call Scheduled", "A new call has been scheduled.")
    audit_event(db, "call_create", "call", user_id=current_user.id, tenant_id=current_user.tenant_id, details=f"call_id={call.id}")
    return success(call=_dump(call))


@router.patch("/{call_id}")
def update_call(
    call_id: int,
    payload: CallUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    call = _visible_call(db, call_id, current_user)
    changes = payload.model_dump(exclude_unset=True)
    reject_cleared(changes, "type", "status")
    if current_user.role == UserRole.agent and "user_id" in changes:
        raise AppError("Agents cannot reassign calls", 403)
    _check_refs(db, current_user.tenant_id, changes)

    for key, value in changes.items():
        setattr(call, key, value)

    db.commit()
    db.refresh(call)

    _notify_caller(db, call, "call_updated", "Call Updated", "A call has been updated.")
    audit_event(db, "call_update", "call", user_id=current_user.id, tenant_id=current_user.tenant_id, details=f"call_id={call.id}")
    return success(call=_dump(call))


@router.delete("/{call_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_call(call_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    call = _visible_call(db, call_id, current_user)
    db.delete(call)
    db.commit()
    audit_event(db, "call_delete", "call", user_id=current_user.id, tenant_id=current_user.tenant_id, details=f"call_id={call_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{call_id}/notes", status_code=status.HTTP_201_CREATED)
def add_note(
    call_id: int,
    payload: CallNoteCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    call = _visible_call(db, call_id, current_user)
    note = CallNote(call_id=call.id, user_id=current_user.id, content=payload.content)
    db.add(note)
    db.commit()
    db.refresh(note)
    return success(note=CallNoteResponse.model_validate(note).model_dump(mode="json"))


@router.delete("/{call_id}/notes/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_note(
    call_id: int,
    note_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    call = _visible_call(db, call_id, current_user)
    note = db.query(CallNote).filter(CallNote.id == note_id, CallNote.call_id == call.id).first()
    if not note:
        raise AppError("No note found with that ID", 404)
    db.delete(note)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
