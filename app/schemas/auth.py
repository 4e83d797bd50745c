"""Pydantic schemas for authentication, invitation and role endpoints."""

from datetime import datetime
from uuid import UUID
from pydantic import EmailStr, Field

from app.models.otp import OtpType
from app.models.role import RoleType
from app.schemas.base import CamelModel


class PlayerRegister(CamelModel):
    """Request schema for player self-registration."""
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=8)
    phone_number: str | None = None
    is_adult: bool = False
    has_accepted_terms: bool = False


class InvitationRegister(CamelModel):
    """Request schema for registering through an invitation link."""
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    password: str = Field(min_length=8)
    phone_number: str | None = None
    is_adult: bool = False
    has_accepted_terms: bool = False


class UserLogin(CamelModel):
    """Login with an email address or a phone number."""
    identifier: str = Field(min_length=1)
    password: str = Field(min_length=1)
    otp_type: OtpType = OtpType.SMS


class LoginChallenge(CamelModel):
    """Response to a successful password check; an OTP is required next."""
    user_id: UUID
    email: str
    phone_number: str | None = None
    requires_otp: bool = True


class VerifyOtp(CamelModel):
    user_id: UUID
    otp: str = Field(min_length=4, max_length=10)


class RequestOtp(CamelModel):
    user_id: UUID
    otp_type: OtpType = OtpType.SMS


class RefreshToken(CamelModel):
    refresh_token: str


class Token(CamelModel):
    """Access/refresh token pair."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class UserOut(CamelModel):
    """Response schema for user info."""
    id: UUID
    first_name: str
    last_name: str
    email: str
    phone_number: str | None = None
    role: str = Field(validation_alias="role_name")
    is_active: bool
    is_verified: bool
    is_adult: bool
    has_accepted_terms: bool
    last_logged_in: datetime | None = None
    created_at: datetime | None = None


class LoginResult(Token):
    user: UserOut


class RegisterResponse(CamelModel):
    message: str
    user: UserOut


class ForgotPassword(CamelModel):
    """Request schema for forgot password."""
    email: EmailStr


class ResetPassword(CamelModel):
    """Request schema for password reset."""
    password: str = Field(min_length=8)


class ChangePassword(CamelModel):
    current_password: str
    new_password: str = Field(min_length=8)


class InviteUser(CamelModel):
    email: EmailStr
    role: RoleType


class InvitationOut(CamelModel):
    id: UUID
    email: str
    role: str
    status: str
    expires_at: datetime
    invited_by: str | None = None
    created_at: datetime | None = None


class InvitationCheck(CamelModel):
    email: str
    user_exists: bool
    is_restoration: bool
    role: str


class ChangeRole(CamelModel):
    role: RoleType
