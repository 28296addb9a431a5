from pydantic import BaseModel


class Trend(BaseModel):
    current: int
    previous: int


class DashboardTrends(BaseModel):
    total_leads: Trend


class DashboardKPIs(BaseModel):
    total_leads: int
    new_leads_today: int
    new_leads_this_week: int
    new_leads_this_month: int
    leads_converted_this_month: int
    lost_leads: int
    leads_by_status: dict[str, int]
    properties_available: int
    properties_sold_this_month: int
    active_tasks: int
    overdue_tasks: int
    # None when no calls are logged.
    call_success_rate: float | None
    trends: DashboardTrends
