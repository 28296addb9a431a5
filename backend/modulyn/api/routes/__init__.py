from modulyn.api.routes import (
    audit,
    auth,
    calls,
    cold_calls,
    dashboard,
    events,
    leads,
    notifications,
    projects,
    properties,
    tasks,
    team,
    tenants,
)

__all__ = [
    "auth",
    "tenants",
    "leads",
    "properties",
    "team",
    "tasks",
    "projects",
    "calls",
    "cold_calls",
    "events",
    "notifications",
    "dashboard",
    "audit",
]
