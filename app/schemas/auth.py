"""Authentication schemas."""

from datetime import datetime

from pydantic import EmailStr, Field

from app.models.user import UserRole
from app.schemas.common import BaseSchema

LOGIN_ID_PATTERN = r"^\d{11}$"


class RegisterRequest(BaseSchema):
    """Student self-registration schema."""

    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginRequest(BaseSchema):
    """Login request schema; identifier is an email or a login id."""

    identifier: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(BaseSchema):
    """Refresh token request schema."""

    refresh_token: str


class UserResponse(BaseSchema):
    """User response schema."""

    id: int
    name: str
    email: str
    login_id: str | None
    role: UserRole
    is_active: bool
    is_primary_admin: bool
    last_login_at: datetime | None
    created_at: datetime


class TokenResponse(BaseSchema):
    """Token response schema."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class AdminCreate(BaseSchema):
    """Admin creation schema; the admin id is chosen by the caller."""

    name: str = Field(..., min_length=2, max_length=50)
    admin_id: str = Field(..., pattern=LOGIN_ID_PATTERN)
    email: EmailStr
    password: str = Field(..., min_length=6)


class CredentialsChange(BaseSchema):
    """Admin login id and password change."""

    old_admin_id: str = Field(..., pattern=LOGIN_ID_PATTERN)
    current_password: str = Field(..., min_length=1)
    new_admin_id: str = Field(..., pattern=LOGIN_ID_PATTERN)
    new_password: str = Field(..., min_length=6)
