from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from modulyn.models.call import Call
from modulyn.models.lead import Lead, LeadStatus
from modulyn.models.property import Property
from modulyn.models.task import Task, TaskStatus
from modulyn.schemas.dashboard import DashboardKPIs, DashboardTrends, Trend


def _period_starts(now: datetime) -> tuple[datetime, datetime, datetime]:
    start_of_today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    # Weeks start on Sunday.
    start_of_week = start_of_today - timedelta(days=(start_of_today.weekday() + 1) % 7)
    start_of_month = start_of_today.replace(day=1)
    return start_of_today, start_of_week, start_of_month


def _start_of_last_month(start_of_month: datetime) -> datetime:
    return (start_of_month - timedelta(days=1)).replace(day=1)


def get_dashboard_kpis(db: Session, tenant_id: int, user_id: int | None = None, now: datetime | None = None) -> DashboardKPIs:
    now = now or datetime.utcnow()
    start_of_today, start_of_week, start_of_month = _period_starts(now)
    start_of_last_month = _start_of_last_month(start_of_month)

    leads = db.query(Lead).filter(Lead.tenant_id == tenant_id)
    tasks = db.query(Task).filter(Task.tenant_id == tenant_id)
    calls = db.query(Call).filter(Call.tenant_id == tenant_id)
    if user_id is not None:
        leads = leads.filter(Lead.assigned_to == user_id)
        tasks = tasks.filter(Task.assigned_to == user_id)
        calls = calls.filter(Call.user_id == user_id)

    def count(query, column=Lead.id) -> int:
        return query.with_entities(func.count(column)).scalar() or 0

    by_status_rows = leads.with_entities(Lead.status, func.count(Lead.id)).group_by(Lead.status).all()
    by_status = {status.value: 0 for status in LeadStatus}
    for status, cnt in by_status_rows:
        by_status[status.value] = int(cnt or 0)

    properties = db.query(Property).filter(Property.tenant_id == tenant_id)
    active_tasks = tasks.filter(Task.status == TaskStatus.active)

    total_calls = count(calls, Call.id)
    successful_calls = count(calls.filter(Call.outcome == "success"), Call.id)
    total_leads = count(leads)

    return DashboardKPIs(
        total_leads=total_leads,
        new_leads_today=count(leads.filter(Lead.created_at >= start_of_today)),
        new_leads_this_week=count(leads.filter(Lead.created_at >= start_of_week)),
        new_leads_this_month=count(leads.filter(Lead.created_at >= start_of_month)),
        leads_converted_this_month=count(
            leads.filter(Lead.status == LeadStatus.closed, Lead.updated_at >= start_of_month)
        ),
        lost_leads=by_status[LeadStatus.lost.value],
        leads_by_status=by_status,
        properties_available=count(properties.filter(Property.status == "available"), Property.id),
        properties_sold_this_month=count(
            properties.filter(Property.status == "sold", Property.updated_at >= start_of_month), Property.id
        ),
        active_tasks=count(active_tasks, Task.id),
        overdue_tasks=count(active_tasks.filter(Task.due_date < now), Task.id),
        call_success_rate=successful_calls / total_calls if total_calls else None,
        trends=DashboardTrends(
            total_leads=Trend(
                current=total_leads,
                previous=count(
                    leads.filter(Lead.created_at >= start_of_last_month, Lead.created_at < start_of_month)
                ),
            )
        ),
    )
