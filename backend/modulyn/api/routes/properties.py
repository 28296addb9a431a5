from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from modulyn.core.database import get_db
from modulyn.core.deps import get_current_user, require_roles
from modulyn.core.errors import AppError
from modulyn.core.responses import success
from modulyn.models.property import Property
from modulyn.models.user import User, UserRole
from modulyn.schemas.property import PropertyCreate, PropertyResponse, PropertyUpdate
from modulyn.services.audit import audit_event

router = APIRouter(prefix="/properties", tags=["properties"])

require_editor = require_roles(UserRole.master, UserRole.admin, UserRole.manager)


def _dump(prop: Property) -> dict:
    return PropertyResponse.model_validate(prop).model_dump(mode="json")


def _tenant_property(db: Session, property_id: int, tenant_id: int) -> Property:
    prop = db.query(Property).filter(Property.id == property_id, Property.tenant_id == tenant_id).first()
    if not prop:
        raise AppError("No property found with that ID", 404)
    return prop


@router.get("")
def list_properties(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    rows = (
        db.query(Property)
        .filter(Property.tenant_id == current_user.tenant_id)
        .order_by(Property.created_at.desc(), Property.id.desc())
        .all()
    )
    return success(properties=[_dump(p) for p in rows])


@router.get("/{property_id}")
def get_property(property_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return success(property=_dump(_tenant_property(db, property_id, current_user.tenant_id)))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_property(payload: PropertyCreate, db: Session = Depends(get_db), current_user: User = Depends(require_editor)):
    prop = Property(tenant_id=current_user.tenant_id, **payload.model_dump())
    db.add(prop)
    db.commit()
    db.refresh(prop)
    audit_event(db, "property_create", "property", user_id=current_user.id, tenant_id=current_user.tenant_id, details=f"property_id={prop.id}")
    return success(property=_dump(prop))


@router.patch("/{property_id}")
def update_property(
    property_id: int,
    payload: PropertyUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_editor),
):
    prop = _tenant_property(db, property_id, current_user.tenant_id)
    changes = payload.model_dump(exclude_unset=True)
    for required in ("name", "type", "current_price"):
        if required in changes and changes[required] is None:
            raise AppError(f"{required} cannot be empty", 400)
    for key, value in changes.items():
        setattr(prop, key, value)
    db.commit()
    db.refresh(prop)
    audit_event(db, "property_update", "property", user_id=current_user.id, tenant_id=current_user.tenant_id, details=f"property_id={prop.id}")
    return success(property=_dump(prop))


@router.delete("/{property_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_property(property_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_editor)):
    prop = _tenant_property(db, property_id, current_user.tenant_id)
    db.delete(prop)
    db.commit()
    audit_event(db, "property_delete", "property", user_id=current_user.id, tenant_id=current_user.tenant_id, details=f"property_id={property_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
