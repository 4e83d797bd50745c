"""Authentication, invitation and role management endpoints."""

import logging
from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import get_auth_service, get_current_user, get_token_service, require_admin
from app.models.invitation import Invitation
from app.models.user import User
from app.schemas.auth import (
    ChangePassword,
    ChangeRole,
    ForgotPassword,
    InvitationCheck,
    InvitationOut,
    InvitationRegister,
    InviteUser,
    LoginChallenge,
    LoginResult,
    PlayerRegister,
    RefreshToken,
    RegisterResponse,
    RequestOtp,
    ResetPassword,
    Token,
    UserLogin,
    UserOut,
    VerifyOtp,
)
from app.schemas.base import MessageResponse
from app.services.auth import AuthService
from app.services.tokens import TokenService

router = APIRouter()
logger = logging.getLogger(__name__)


def _invitation_out(invitation: Invitation) -> InvitationOut:
    if invitation.is_accepted:
        status = "accepted"
    elif invitation.is_expired():
        status = "expired"
    else:
        status = "pending"
    return InvitationOut(
        id=invitation.id,
        email=invitation.email,
        role=invitation.role.name.value,
        status=status,
        expires_at=invitation.expires_at,
        invited_by=invitation.invited_by.email if invitation.invited_by else None,
        created_at=invitation.created_at,
    )


# ============================================================================
# REGISTRATION AND LOGIN
# ============================================================================

@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(data: PlayerRegister, auth: AuthService = Depends(get_auth_service)):
    """Register a new player account."""
    user = await auth.register_player(
        first_name=data.first_name,
        last_name=data.last_name,
        email=data.email,
        password=data.password,
        phone_number=data.phone_number,
        is_adult=data.is_adult,
        has_accepted_terms=data.has_accepted_terms,
    )
    return RegisterResponse(message="Registration successful. Please log in.", user=UserOut.model_validate(user))


@router.post("/register/{token}", response_model=RegisterResponse, status_code=201)
async def register_from_invitation(
    token: str,
    data: InvitationRegister,
    auth: AuthService = Depends(get_auth_service),
):
    """Create (or restore) an account from an invitation link."""
    user = await auth.register_from_invitation(
        token,
        first_name=data.first_name,
        last_name=data.last_name,
        password=data.password,
        phone_number=data.phone_number,
        is_adult=data.is_adult,
        has_accepted_terms=data.has_accepted_terms,
    )
    return RegisterResponse(message="Invitation accepted. Please log in.", user=UserOut.model_validate(user))


@router.post("/login", response_model=LoginChallenge)
async def login(credentials: UserLogin, auth: AuthService = Depends(get_auth_service)):
    """Check the password and send a one-time code.

    Wrong email, phone or password all give the same 401.
    """
    user = await auth.login(credentials.identifier, credentials.password)
    await auth.start_otp_challenge(user.id, credentials.otp_type)
    return LoginChallenge(user_id=user.id, email=user.email, phone_number=user.phone_number)


@router.post("/verify-otp", response_model=LoginResult)
async def verify_otp(data: VerifyOtp, auth: AuthService = Depends(get_auth_service)):
    """Exchange a valid one-time code for access and refresh tokens."""
    user, tokens = await auth.verify_login_otp(data.user_id, data.otp)
    return LoginResult(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        user=UserOut.model_validate(user),
    )


@router.post("/request-otp", response_model=MessageResponse)
async def request_otp(data: RequestOtp, auth: AuthService = Depends(get_auth_service)):
    await auth.request_otp(data.user_id, data.otp_type)
    return {"message": "A new code has been sent."}


@router.post("/refresh-token", response_model=Token)
async def refresh_token(
    data: RefreshToken,
    db: AsyncSession = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
):
    tokens = await token_service.refresh(db, data.refresh_token)
    return Token(access_token=tokens.access_token, refresh_token=tokens.refresh_token)


@router.get("/me", response_model=UserOut)
async def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/me/change-password", response_model=MessageResponse)
async def change_password(
    data: ChangePassword,
    current_user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    await auth.change_password(current_user, data.current_password, data.new_password)
    return {"message": "Password changed successfully."}


# ============================================================================
# PASSWORD RESET
# ============================================================================

@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(data: ForgotPassword, auth: AuthService = Depends(get_auth_service)):
    """Send a reset link. The answer is the same whether or not the email exists."""
    await auth.request_password_reset(data.email)
    return {"message": "If an account with that email exists, a password reset link has been sent."}


@router.get("/reset-password/{token}", response_model=MessageResponse)
async def verify_reset_token(token: str, auth: AuthService = Depends(get_auth_service)):
    await auth.verify_reset_token(token)
    return {"message": "Reset token is valid."}


@router.post("/reset-password/{token}", response_model=MessageResponse)
async def reset_password(token: str, data: ResetPassword, auth: AuthService = Depends(get_auth_service)):
    await auth.reset_password(token, data.password)
    return {"message": "Password reset successful. You can now log in."}


# ============================================================================
# INVITATIONS
# ============================================================================

@router.get("/verify-invitation/{token}", response_model=InvitationCheck)
async def verify_invitation(token: str, auth: AuthService = Depends(get_auth_service)):
    return await auth.verify_invitation(token)


@router.post("/reset-password-from-invitation/{token}", response_model=MessageResponse)
async def reset_password_from_invitation(
    token: str,
    data: ResetPassword,
    auth: AuthService = Depends(get_auth_service),
):
    """Accept an invitation for an email that already has an account."""
    await auth.reset_password_from_invitation(token, data.password)
    return {"message": "Invitation accepted. You can now log in with your new password."}


@router.post("/invite", response_model=InvitationOut, status_code=201)
async def invite(
    data: InviteUser,
    current_user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    invitation = await auth.create_invitation(data.email, data.role, current_user)
    return _invitation_out(invitation)


@router.get("/invitations", response_model=List[InvitationOut])
async def list_invitations(
    current_user: User = Depends(require_admin),
    auth: AuthService = Depends(get_auth_service),
):
    return [_invitation_out(inv) for inv in await auth.list_invitations()]


@router.delete("/invitations/{invitation_id}", response_model=MessageResponse)
async def delete_invitation(
    invitation_id: UUID,
    current_user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    await auth.delete_invitation(invitation_id, current_user)
    return {"message": "Invitation deleted."}


# ============================================================================
# ROLES
# ============================================================================

@router.put("/revoke-role/{user_id}", response_model=UserOut)
async def revoke_role(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    """Downgrade a user to player."""
    return await auth.revoke_role(user_id, current_user)


@router.put("/users/{user_id}/role", response_model=UserOut)
async def change_user_role(
    user_id: UUID,
    data: ChangeRole,
    current_user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    return await auth.change_user_role(user_id, data.role, current_user)
