from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from modulyn.core.database import get_db
from modulyn.core.deps import require_admin
from modulyn.core.responses import success
from modulyn.models.audit import AuditLog
from modulyn.models.user import User
from modulyn.schemas.audit import AuditLogResponse


router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("")
def list_audit_logs(
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    current: User = Depends(require_admin),
):
    rows = (
        db.query(AuditLog)
        .filter(AuditLog.tenant_id == current.tenant_id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(limit)
        .all()
    )
    return success(auditLogs=[AuditLogResponse.model_validate(r).model_dump(mode="json") for r in rows])
