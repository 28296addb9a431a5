from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from modulyn.api.api import api_router
from modulyn.core.config import get_settings
from modulyn.core.database import Base, engine
from modulyn.core.errors import register_exception_handlers
from modulyn.core.logging import get_logger, setup_logging
from modulyn.core.middleware import RequestIDMiddleware, SecurityHeadersMiddleware
from modulyn.core.rate_limit import limiter
from modulyn import models  # noqa: F401

settings = get_settings()
setup_logging(settings.LOG_LEVEL, settings.LOG_FILE or None)
logger = get_logger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    docs_url="/docs" if settings.ENABLE_API_DOCS else None,
    redoc_url="/redoc" if settings.ENABLE_API_DOCS else None,
    openapi_url="/openapi.json" if settings.ENABLE_API_DOCS else None,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
register_exception_handlers(app)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "x-request-id"],
)


@app.on_event("startup")
def on_startup() -> None:
    Base.metadata.create_all(bind=engine)
    logger.info("%s started (%s)", settings.PROJECT_NAME, settings.ENVIRONMENT)


@app.get("/health")
@limiter.limit("60/minute")
def health(request: Request):
    return {"status": "ok"}


@app.get(settings.API_PREFIX, include_in_schema=False)
def api_root():
    return {
        "name": settings.PROJECT_NAME,
        "base": settings.API_PREFIX,
        "endpoints": [
            "/auth/login",
            "/tenants/signup",
            "/leads",
            "/leads/{id}/matches",
            "/properties",
            "/team/users",
            "/tasks",
            "/projects",
            "/calls",
            "/cold-calls",
            "/events",
            "/notifications",
            "/dashboard/kpis",
        ],
    }


app.include_router(api_router, prefix=settings.API_PREFIX)
