from pydantic import BaseModel, EmailStr

from modulyn.models.user import UserRole


class MeResponse(BaseModel):
    id: int
    tenant_id: int
    full_name: str
    email: EmailStr
    role: UserRole
    is_admin: bool

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshTokenRequest(BaseModel):
    refresh_token: str
