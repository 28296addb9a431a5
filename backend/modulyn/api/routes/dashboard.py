from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from modulyn.core.database import get_db
from modulyn.core.deps import get_current_user
from modulyn.core.responses import success
from modulyn.models.user import User, UserRole
from modulyn.services.dashboard import get_dashboard_kpis

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/kpis")
def dashboard_kpis(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    # Agents only see figures for their own leads.
    user_id = current_user.id if current_user.role == UserRole.agent else None
    kpis = get_dashboard_kpis(db, current_user.tenant_id, user_id=user_id)
    return success(kpis=kpis.model_dump())
