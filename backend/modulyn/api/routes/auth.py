from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.security import OAuth2PasswordRequestForm
from jose import JWTError
from sqlalchemy.orm import Session

from modulyn.core.config import get_settings
from modulyn.core.database import get_db
from modulyn.core.deps import get_current_user
from modulyn.core.errors import AppError
from modulyn.core.logging import get_logger
from modulyn.core.rate_limit import limiter
from modulyn.core.responses import success
from modulyn.core.security import create_access_token, create_refresh_token, decode_token, verify_password
from modulyn.models.user import User
from modulyn.schemas.auth import MeResponse, RefreshTokenRequest, TokenResponse
from modulyn.services.audit import audit_event

router = APIRouter(prefix="/auth", tags=["auth"])
logger = get_logger(__name__)


def issue_tokens(user: User) -> TokenResponse:
    access = create_access_token(str(user.id), user.tenant_id, user.session_version)
    refresh = create_refresh_token(str(user.id), user.tenant_id, user.session_version)
    return TokenResponse(access_token=access, refresh_token=refresh)


def client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


@router.post("/login", response_model=TokenResponse)
@limiter.limit("20/minute")
def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    settings = get_settings()
    user = db.query(User).filter(User.email == form_data.username.lower()).first()
    now = datetime.now(timezone.utc).replace(tzinfo=None)

    if not user:
        raise AppError("Incorrect email or password", 400)

    if user.locked_until and user.locked_until > now:
        raise AppError("Account is temporarily locked", 423)

    if not verify_password(form_data.password, user.hashed_password):
        user.failed_login_attempts += 1
        if user.failed_login_attempts >= settings.LOGIN_MAX_ATTEMPTS:
            user.locked_until = now + timedelta(minutes=settings.LOGIN_LOCK_MINUTES)
            user.failed_login_attempts = 0
            logger.warning("Locked user %s after repeated failed logins", user.id)
        db.commit()
        audit_event(db, "login_failed", "auth", user_id=user.id, tenant_id=user.tenant_id, ip_address=client_ip(request))
        raise AppError("Incorrect email or password", 400)

    if not user.is_active:
        raise AppError("User inactive", 403)

    user.failed_login_attempts = 0
    user.locked_until = None
    db.commit()

    audit_event(db, "login_success", "auth", user_id=user.id, tenant_id=user.tenant_id, ip_address=client_ip(request))
    return issue_tokens(user)


@router.post("/refresh", response_model=TokenResponse)
def refresh_token(payload: RefreshTokenRequest, db: Session = Depends(get_db)):
    try:
        claims = decode_token(payload.refresh_token)
    except JWTError:
        raise AppError("Invalid refresh token", 401)

    if claims.get("typ") != "refresh":
        raise AppError("Invalid token type", 401)

    user_id = claims.get("sub")
    token_sv = claims.get("sv")
    if not user_id or token_sv is None:
        raise AppError("Invalid token claims", 401)

    user = db.query(User).filter(User.id == int(user_id)).first()
    if not user or not user.is_active or user.session_version != int(token_sv):
        raise AppError("Session invalid", 401)

    return issue_tokens(user)


@router.post("/revoke")
def revoke_sessions(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    current_user.session_version += 1
    db.commit()
    audit_event(db, "sessions_revoked", "auth", user_id=current_user.id, tenant_id=current_user.tenant_id)
    return success(session_version=current_user.session_version)


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return success(user=MeResponse.model_validate(current_user).model_dump(mode="json"))
