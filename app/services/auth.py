"""Authentication service for the arcade portal.

Handles password hashing, registration, OTP-backed login, invitations,
role changes, soft deletion and password reset.
"""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID
from passlib.context import CryptContext
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.core.errors import (
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from app.models.invitation import Invitation
from app.models.otp import OtpType
from app.models.role import ADMIN_ASSIGNABLE_ROLES, MANAGER_ROLES, Role, RoleType
from app.models.user import User
from app.services import analytics as activity
from app.services.email_service import EmailService
from app.services.otp import OtpService
from app.services.tokens import AuthTokens, TokenService

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__default_ident="2b", bcrypt__rounds=10)

# Written over a consumed reset token so it can never match again
RESET_TOKEN_USED_AT = datetime(1970, 1, 1)


def _truncate_password(password: str) -> str:
    """Truncate password to 72 bytes (bcrypt limit)."""
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > 72:
        return password_bytes[:72].decode("utf-8", errors="ignore")
    return password


def hash_password(password: str) -> str:
    """Hash a plain-text password.

    Note: Bcrypt has a 72-byte password limit. We truncate longer passwords.
    """
    return pwd_context.hash(_truncate_password(password))


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(_truncate_password(plain_password), hashed_password)


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:
    def __init__(
        self,
        db: AsyncSession,
        settings: Settings,
        email_service: Optional[EmailService] = None,
        otp_service: Optional[OtpService] = None,
        token_service: Optional[TokenService] = None,
    ):
        self.db = db
        self.settings = settings
        self.email_service = email_service
        self.otp_service = otp_service
        self.token_service = token_service

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_role(self, name: RoleType) -> Role:
        result = await self.db.execute(select(Role).where(Role.name == name))
        role = result.scalar_one_or_none()
        if not role:
            raise NotFoundError(f"Role '{name.value}' not found")
        return role

    async def get_user_by_email(self, email: str, include_deleted: bool = False) -> Optional[User]:
        query = select(User).where(func.lower(User.email) == normalize_email(email))
        if not include_deleted:
            query = query.where(User.is_deleted == False)  # noqa: E712
        result = await self.db.execute(query)
        return result.scalars().first()

    async def get_user_by_phone(self, phone_number: str, include_deleted: bool = False) -> Optional[User]:
        query = select(User).where(User.phone_number == phone_number.strip())
        if not include_deleted:
            query = query.where(User.is_deleted == False)  # noqa: E712
        result = await self.db.execute(query)
        return result.scalars().first()

    async def _get_target_user(self, user_id: UUID) -> User:
        user = await self.db.get(User, user_id)
        if not user or user.is_deleted:
            raise NotFoundError("User not found")
        return user

    # ------------------------------------------------------------------
    # Registration and login
    # ------------------------------------------------------------------

    async def register_player(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        phone_number: Optional[str] = None,
        is_adult: bool = False,
        has_accepted_terms: bool = False,
    ) -> User:
        """Create a player account.

        Soft-deleted accounts still own their email and phone; they can only
        come back through an invitation.
        """
        if await self.get_user_by_email(email, include_deleted=True):
            raise ConflictError("Email already registered")
        if phone_number and await self.get_user_by_phone(phone_number, include_deleted=True):
            raise ConflictError("Phone number already registered")

        role = await self.get_role(RoleType.PLAYER)
        user = User(
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            email=normalize_email(email),
            phone_number=phone_number.strip() if phone_number else None,
            hashed_password=hash_password(password),
            role_id=role.id,
            role=role,
            is_active=True,
            is_adult=is_adult,
            has_accepted_terms=has_accepted_terms,
        )
        self.db.add(user)
        await self.db.flush()
        self.db.add(activity.build_activity(activity.SIGNED_UP, user_id=user.id))
        await self.db.commit()

        logger.info("Player registered: %s", user.email)
        if self.email_service and not await self.email_service.send_welcome_email(user.email, user.first_name):
            logger.warning("Welcome email not sent to %s", user.email)
        return user

    async def login(self, identifier: str, password: str) -> User:
        """Check credentials given an email or phone number.

        Every failure gives the same error. Inactive accounts are
        reactivated by a successful login.
        """
        identifier = identifier.strip()
        if "@" in identifier:
            user = await self.get_user_by_email(identifier)
        else:
            user = await self.get_user_by_phone(identifier)

        if not user or not verify_password(password, user.hashed_password):
            raise AuthenticationError("Invalid credentials")

        if not user.is_active:
            logger.info("Reactivating inactive account on login: %s", user.email)
            user.is_active = True
        user.last_logged_in = datetime.utcnow()
        await self.db.commit()
        return user

    async def start_otp_challenge(self, user_id: UUID, otp_type: OtpType = OtpType.SMS) -> None:
        """Generate a login code and send it on the requested channel."""
        code = await self.otp_service.generate_otp(user_id, otp_type)
        await self.otp_service.send_otp(user_id, code, otp_type)

    async def request_otp(self, user_id: UUID, otp_type: OtpType = OtpType.SMS) -> None:
        """Re-issue a login code, e.g. after the first one expired."""
        await self._get_target_user(user_id)
        await self.start_otp_challenge(user_id, otp_type)

    async def verify_login_otp(self, user_id: UUID, code: str) -> tuple[User, AuthTokens]:
        """Finish login with the OTP code and issue tokens."""
        if not await self.otp_service.verify_otp(user_id, code):
            raise ValidationError("Invalid or expired OTP")

        user = await self._get_target_user(user_id)
        now = datetime.utcnow()
        user.is_verified = True
        user.is_active = True
        user.last_logged_in = now
        user.last_seen = now
        self.db.add(activity.build_activity(activity.LOGGED_IN, user_id=user.id))
        await self.db.commit()

        logger.info("User logged in: %s (role: %s)", user.email, user.role_name)
        return user, self.token_service.create_tokens(user)

    async def change_password(self, user: User, old_password: str, new_password: str) -> None:
        if not verify_password(old_password, user.hashed_password):
            raise ValidationError("Current password is incorrect")
        user.hashed_password = hash_password(new_password)
        await self.db.commit()
        logger.info("Password changed for %s", user.email)

    async def initialize_superadmin(self) -> Optional[User]:
        """Create the configured superadmin account if none exists yet."""
        role = await self.get_role(RoleType.SUPERADMIN)
        existing = await self.db.execute(select(User).where(User.role_id == role.id).limit(1))
        if existing.scalar_one_or_none():
            return None

        email = self.settings.SUPERADMIN_EMAIL
        password = self.settings.SUPERADMIN_PASSWORD
        if not email or not password:
            logger.warning("SUPERADMIN_EMAIL/SUPERADMIN_PASSWORD not set, skipping superadmin creation")
            return None
        if await self.get_user_by_email(email, include_deleted=True):
            logger.warning("Cannot create superadmin: %s is already registered", email)
            return None

        user = User(
            first_name="Super",
            last_name="Admin",
            email=normalize_email(email),
            phone_number=self.settings.SUPERADMIN_PHONE or None,
            hashed_password=hash_password(password),
            role_id=role.id,
            role=role,
            is_active=True,
            is_verified=True,
            is_adult=True,
            has_accepted_terms=True,
        )
        self.db.add(user)
        await self.db.commit()
        logger.info("Superadmin created: %s", user.email)
        return user

    # ------------------------------------------------------------------
    # Role hierarchy
    # ------------------------------------------------------------------

    @staticmethod
    def _ensure_manager(actor: User) -> None:
        if actor.role.name not in MANAGER_ROLES:
            raise ForbiddenError("Only admins and superadmins can manage users")

    @staticmethod
    def _ensure_can_grant(actor: User, role: RoleType) -> None:
        if actor.role.name == RoleType.ADMIN and role not in ADMIN_ASSIGNABLE_ROLES:
            raise ForbiddenError("Admins can only manage editor, player and viewer roles")

    def _ensure_can_manage_user(self, actor: User, target: User) -> None:
        self._ensure_manager(actor)
        if actor.id == target.id:
            raise ForbiddenError("You cannot change your own account")
        self._ensure_can_grant(actor, target.role.name)

    # ------------------------------------------------------------------
    # Invitations
    # ------------------------------------------------------------------

    async def create_invitation(self, email: str, role_name: RoleType, inviter: User) -> Invitation:
        """Invite ``email`` to join with ``role_name``.

        Stale rows for the email are removed and the new invitation is
        inserted in the same commit. The email goes out after the commit.
        """
        self._ensure_manager(inviter)
        self._ensure_can_grant(inviter, role_name)

        email = normalize_email(email)
        existing_user = await self.get_user_by_email(email)
        if existing_user:
            self._ensure_can_grant(inviter, existing_user.role.name)
        if existing_user and existing_user.role.name == role_name:
            raise ConflictError("User already has this role")

        now = datetime.utcnow()
        pending = await self.db.execute(
            select(Invitation).where(
                func.lower(Invitation.email) == email,
                Invitation.is_accepted == False,  # noqa: E712
                Invitation.expires_at > now,
            )
        )
        if pending.scalars().first():
            raise ConflictError("An active invitation already exists for this email")

        role = await self.get_role(role_name)
        await self.db.execute(
            delete(Invitation)
            .where(func.lower(Invitation.email) == email)
            .execution_options(synchronize_session=False)
        )
        invitation = Invitation(
            email=email,
            role_id=role.id,
            role=role,
            token=secrets.token_urlsafe(32),
            expires_at=now + timedelta(days=self.settings.INVITATION_EXPIRY_DAYS),
            invited_by_id=inviter.id,
            invited_by=inviter,
        )
        self.db.add(invitation)
        await self.db.commit()

        logger.info("Invitation created for %s as %s by %s", email, role_name.value, inviter.email)
        sent = await self.email_service.send_invitation_email(
            email, invitation.token, role_name.value, invited_by=inviter.full_name
        )
        if not sent:
            logger.warning("Invitation email not sent to %s", email)
        return invitation

    async def _get_valid_invitation(self, token: str) -> Invitation:
        result = await self.db.execute(select(Invitation).where(Invitation.token == token))
        invitation = result.scalar_one_or_none()
        if not invitation or invitation.is_accepted:
            raise ValidationError("Invalid or expired invitation")
        if invitation.is_expired():
            await self.db.delete(invitation)
            await self.db.commit()
            raise ValidationError("Invalid or expired invitation")
        return invitation

    async def verify_invitation(self, token: str) -> dict:
        invitation = await self._get_valid_invitation(token)
        user = await self.get_user_by_email(invitation.email, include_deleted=True)
        return {
            "email": invitation.email,
            "user_exists": bool(user and not user.is_deleted),
            "is_restoration": bool(user and user.is_deleted),
            "role": invitation.role.name.value,
        }

    def _restore(self, user: User, role: Role) -> None:
        user.role_id = role.id
        user.role = role
        user.is_active = True
        user.is_deleted = False
        user.deleted_at = None

    async def register_from_invitation(
        self,
        token: str,
        first_name: str,
        last_name: str,
        password: str,
        phone_number: Optional[str] = None,
        is_adult: bool = False,
        has_accepted_terms: bool = False,
    ) -> User:
        """Create (or restore) the account an invitation was sent for."""
        invitation = await self._get_valid_invitation(token)
        user = await self.get_user_by_email(invitation.email, include_deleted=True)

        if user and not user.is_deleted:
            raise ConflictError("An account with this email already exists")

        if phone_number:
            phone_owner = await self.get_user_by_phone(phone_number)
            if phone_owner and (not user or phone_owner.id != user.id):
                raise ConflictError("Phone number already registered")

        if user:
            # Restore the soft-deleted account in place
            user.first_name = first_name.strip()
            user.last_name = last_name.strip()
            user.hashed_password = hash_password(password)
            user.phone_number = phone_number.strip() if phone_number else user.phone_number
            user.is_adult = is_adult
            user.has_accepted_terms = has_accepted_terms
            self._restore(user, invitation.role)
            logger.info("Restored soft-deleted account %s from invitation", user.email)
        else:
            user = User(
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                email=invitation.email,
                phone_number=phone_number.strip() if phone_number else None,
                hashed_password=hash_password(password),
                role_id=invitation.role_id,
                role=invitation.role,
                is_active=True,
                is_verified=True,
                is_adult=is_adult,
                has_accepted_terms=has_accepted_terms,
            )
            self.db.add(user)
            await self.db.flush()

        invitation.is_accepted = True
        self.db.add(activity.build_activity(activity.SIGNED_UP_FROM_INVITATION, user_id=user.id))
        await self.db.commit()
        logger.info("Invitation accepted by %s as %s", user.email, user.role_name)
        return user

    async def reset_password_from_invitation(self, token: str, password: str) -> User:
        """Accept an invitation for an email that already has an account."""
        invitation = await self._get_valid_invitation(token)
        user = await self.get_user_by_email(invitation.email, include_deleted=True)
        if not user:
            raise NotFoundError("No account exists for this invitation; register instead")

        user.hashed_password = hash_password(password)
        self._restore(user, invitation.role)
        invitation.is_accepted = True
        await self.db.commit()
        logger.info("Invitation applied to existing account %s as %s", user.email, user.role_name)
        return user

    async def list_invitations(self) -> list[Invitation]:
        result = await self.db.execute(select(Invitation).order_by(Invitation.created_at.desc()))
        return list(result.scalars().all())

    async def delete_invitation(self, invitation_id: UUID, actor: User) -> None:
        self._ensure_manager(actor)
        invitation = await self.db.get(Invitation, invitation_id)
        if not invitation:
            raise NotFoundError("Invitation not found")
        self._ensure_can_grant(actor, invitation.role.name)
        await self.db.delete(invitation)
        await self.db.commit()
        logger.info("Invitation %s for %s deleted by %s", invitation_id, invitation.email, actor.email)

    # ------------------------------------------------------------------
    # Role changes and deletion
    # ------------------------------------------------------------------

    async def change_user_role(self, target_id: UUID, new_role: RoleType, actor: User) -> User:
        target = await self._get_target_user(target_id)
        self._ensure_can_manage_user(actor, target)
        self._ensure_can_grant(actor, new_role)

        old_role = target.role_name
        if target.role.name == new_role:
            raise ValidationError("User already has this role")

        role = await self.get_role(new_role)
        target.role_id = role.id
        target.role = role
        await self.db.commit()

        logger.info("Role of %s changed %s -> %s by %s", target.email, old_role, new_role.value, actor.email)
        if not await self.email_service.send_role_changed_email(target.email, target.first_name, old_role, new_role.value):
            logger.warning("Role change email not sent to %s", target.email)
        return target

    async def revoke_role(self, target_id: UUID, actor: User) -> User:
        """Downgrade a user to player."""
        target = await self._get_target_user(target_id)
        self._ensure_can_manage_user(actor, target)

        old_role = target.role_name
        if target.role.name == RoleType.PLAYER:
            raise ValidationError("User has no role to revoke")

        role = await self.get_role(RoleType.PLAYER)
        target.role_id = role.id
        target.role = role
        await self.db.commit()

        logger.info("Role %s revoked from %s by %s", old_role, target.email, actor.email)
        if not await self.email_service.send_role_revoked_email(target.email, target.first_name, old_role):
            logger.warning("Role revocation email not sent to %s", target.email)
        return target

    async def soft_delete_user(self, target_id: UUID, actor: User) -> User:
        target = await self._get_target_user(target_id)
        self._ensure_can_manage_user(actor, target)

        target.is_deleted = True
        target.deleted_at = datetime.utcnow()
        target.is_active = False
        await self.db.commit()
        logger.info("User %s soft-deleted by %s", target.email, actor.email)
        return target

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    async def request_password_reset(self, email: str) -> None:
        """Email a reset link. Unknown emails are ignored silently."""
        user = await self.get_user_by_email(email)
        if not user:
            logger.info("Password reset requested for unknown email")
            return

        token = secrets.token_hex(32)
        expiry_minutes = self.settings.RESET_TOKEN_EXPIRY_MINUTES
        user.reset_token = hash_reset_token(token)
        user.reset_token_expiry = datetime.utcnow() + timedelta(minutes=expiry_minutes)
        await self.db.commit()

        if not await self.email_service.send_password_reset_email(user.email, token, expiry_minutes):
            logger.error("Password reset email not sent to %s", user.email)

    async def verify_reset_token(self, token: str) -> User:
        result = await self.db.execute(
            select(User).where(
                User.reset_token == hash_reset_token(token),
                User.reset_token_expiry > datetime.utcnow(),
                User.is_deleted == False,  # noqa: E712
            )
        )
        user = result.scalars().first()
        if not user:
            raise ValidationError("Invalid or expired reset token")
        return user

    async def reset_password(self, token: str, new_password: str) -> User:
        user = await self.verify_reset_token(token)
        user.hashed_password = hash_password(new_password)
        user.reset_token = ""
        user.reset_token_expiry = RESET_TOKEN_USED_AT
        await self.db.commit()
        logger.info("Password reset for %s", user.email)
        return user
