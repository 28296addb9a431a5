from fastapi import APIRouter

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

api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(tenants.router)
api_router.include_router(leads.router)
api_router.include_router(properties.router)
api_router.include_router(team.router)
api_router.include_router(tasks.router)
api_router.include_router(projects.router)
api_router.include_router(calls.router)
api_router.include_router(cold_calls.router)
api_router.include_router(events.router)
api_router.include_router(notifications.router)
api_router.include_router(dashboard.router)
api_router.include_router(audit.router)
