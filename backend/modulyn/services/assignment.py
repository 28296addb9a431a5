from sqlalchemy.orm import Session

from modulyn.models.call import Call, ColdCall
from modulyn.models.event import Event
from modulyn.models.lead import Lead, OPEN_LEAD_STATUSES
from modulyn.models.notification import Notification
from modulyn.models.project import ProjectTeamMember
from modulyn.models.task import Task
from modulyn.models.user import User, UserRole


def assign_best_agent(db: Session, lead: Lead) -> int | None:
    agents = (
        db.query(User)
        .filter(User.tenant_id == lead.tenant_id, User.role == UserRole.agent, User.is_active == True)
        .order_by(User.id)
        .all()
    )
    if not agents:
        return None

    # Fewest open leads wins; ties go to the longest-standing agent.
    best_agent = None
    min_count = None
    for agent in agents:
        active_count = (
            db.query(Lead)
            .filter(
                Lead.tenant_id == lead.tenant_id,
                Lead.assigned_to == agent.id,
                Lead.status.in_(OPEN_LEAD_STATUSES),
            )
            .count()
        )
        if min_count is None or active_count < min_count:
            min_count = active_count
            best_agent = agent

    return best_agent.id if best_agent else None


def release_user_assignments(db: Session, user_id: int) -> None:
    """Drop every tenant-scoped reference to a user who is leaving the tenant.

    Flushes but does not commit.
    """
    db.query(Lead).filter(Lead.assigned_to == user_id).update({Lead.assigned_to: None}, synchronize_session=False)
    db.query(Task).filter(Task.assigned_to == user_id).update({Task.assigned_to: None}, synchronize_session=False)
    db.query(Event).filter(Event.assigned_to == user_id).update({Event.assigned_to: None}, synchronize_session=False)
    db.query(Call).filter(Call.user_id == user_id).update({Call.user_id: None}, synchronize_session=False)
    db.query(ColdCall).filter(ColdCall.agent_id == user_id).update({ColdCall.agent_id: None}, synchronize_session=False)
    db.query(User).filter(User.reporting_to == user_id).update({User.reporting_to: None}, synchronize_session=False)
    db.query(ProjectTeamMember).filter(ProjectTeamMember.user_id == user_id).delete(synchronize_session=False)
    db.query(Notification).filter(Notification.user_id == user_id).delete(synchronize_session=False)
    db.flush()
