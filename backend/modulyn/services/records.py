from sqlalchemy.orm import Session

from modulyn.core.errors import AppError


def get_owned(db: Session, model, row_id: int, tenant_id: int, label: str):
    row = db.query(model).filter(model.id == row_id, model.tenant_id == tenant_id).first()
    if not row:
        raise AppError(f"No {label} found with that ID", 404)
    return row


def check_reference(db: Session, model, row_id: int | None, tenant_id: int, label: str) -> None:
    """Reject a foreign id that points outside the caller's tenant."""
    if row_id is None:
        return
    if not db.query(model.id).filter(model.id == row_id, model.tenant_id == tenant_id).first():
        raise AppError(f"{label} not found", 400)


def reject_cleared(changes: dict, *fields: str) -> None:
    for field in fields:
        if field in changes and changes[field] is None:
            raise AppError(f"{field} cannot be empty", 400)
