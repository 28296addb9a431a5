from datetime import datetime, timezone

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.orm import Session

from modulyn.core.config import get_settings
from modulyn.core.database import get_db
from modulyn.core.errors import AppError
from modulyn.core.security import decode_token
from modulyn.models.tenant import Tenant
from modulyn.models.user import ADMIN_ROLES, User, UserRole
from modulyn.services.tenants import trial_expired

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def _authenticate(db: Session, token: str | None) -> User:
    if not token:
        raise AppError("No authorization token", 401)

    try:
        payload = decode_token(token)
    except JWTError:
        raise AppError("Invalid or expired token", 401)

    if payload.get("typ") != "access":
        raise AppError("Invalid or expired token", 401)

    user_id = payload.get("sub")
    token_session_version = payload.get("sv")
    if not user_id or token_session_version is None:
        raise AppError("Invalid or expired token", 401)

    user = db.query(User).filter(User.id == int(user_id)).first()
    if not user:
        raise AppError("Profile not found", 401)
    if not user.is_active:
        raise AppError("User inactive", 403)
    if user.session_version != int(token_session_version):
        raise AppError("Session revoked", 401)
    if user.locked_until and user.locked_until > datetime.now(timezone.utc).replace(tzinfo=None):
        raise AppError("Account locked", 423)
    return user


def get_current_user(db: Session = Depends(get_db), token: str | None = Depends(oauth2_scheme)) -> User:
    user = _authenticate(db, token)

    tenant = db.query(Tenant).filter(Tenant.id == user.tenant_id).first()
    if not tenant:
        raise AppError("Tenant not found", 401)
    if trial_expired(tenant):
        raise AppError(
            "Your trial has expired. Upgrade to unlock all features.",
            402,
            upgradeUrl=get_settings().UPGRADE_URL,
        )
    return user


def get_current_tenant(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)) -> Tenant:
    return db.query(Tenant).filter(Tenant.id == current_user.tenant_id).one()


def require_roles(*roles: UserRole):
    def role_dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise AppError("Forbidden", 403)
        return current_user

    return role_dependency


require_admin = require_roles(*ADMIN_ROLES)
