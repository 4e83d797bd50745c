"""FastAPI dependencies for authentication, authorization and services.

Collaborators (email, Twilio Verify, cache, job queue, tokens, geo-IP) are
built once in ``create_app()`` and kept on ``app.state``; the providers
below hand them to routers so tests can swap them via
``app.dependency_overrides``.
"""

from typing import Optional
from uuid import UUID
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.models.role import RoleType
from app.models.user import User
from app.services.admin_analytics import AdminAnalyticsService
from app.services.auth import AuthService
from app.services.cache import CacheService
from app.services.email_service import EmailService
from app.services.geoip import GeoIpService
from app.services.job_queue import JobQueue
from app.services.otp import OtpService
from app.services.signup_analytics import SignupAnalyticsService
from app.services.sms import TwilioVerifyClient
from app.services.tokens import TokenService

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def get_email_service(request: Request) -> EmailService:
    return request.app.state.email_service


def get_verify_client(request: Request) -> TwilioVerifyClient:
    return request.app.state.verify_client


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_cache(request: Request) -> CacheService:
    return request.app.state.cache


def get_job_queue(request: Request) -> JobQueue:
    return request.app.state.job_queue


def get_geoip(request: Request) -> GeoIpService:
    return request.app.state.geoip


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
    verify_client: TwilioVerifyClient = Depends(get_verify_client),
    token_service: TokenService = Depends(get_token_service),
) -> AuthService:
    return AuthService(
        db,
        settings,
        email_service=email_service,
        otp_service=OtpService(db, email_service, verify_client, settings),
        token_service=token_service,
    )


def get_admin_analytics_service(db: AsyncSession = Depends(get_db)) -> AdminAnalyticsService:
    return AdminAnalyticsService(db)


def get_signup_analytics_service(
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    geoip: GeoIpService = Depends(get_geoip),
) -> SignupAnalyticsService:
    return SignupAnalyticsService(db, cache, geoip, cache_ttl=settings.ANALYTICS_CACHE_TTL_SECONDS)


async def _user_from_token(db: AsyncSession, token_service: TokenService, token: str) -> Optional[User]:
    payload = token_service.decode_access_token(token)
    if not payload:
        return None
    try:
        user_id = UUID(payload["sub"])
    except ValueError:
        return None
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user or user.is_deleted:
        return None
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
) -> User:
    """Extract and validate the current user from JWT token.

    Raises 401 if no token or invalid token.
    """
    user = await _user_from_token(db, token_service, credentials.credentials)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )

    return user


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    db: AsyncSession = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
) -> Optional[User]:
    """Same as get_current_user but returns None for anonymous callers."""
    if not credentials:
        return None
    user = await _user_from_token(db, token_service, credentials.credentials)
    if user and user.is_active:
        return user
    return None


def require_role(*roles: RoleType):
    """Dependency factory that checks if user has one of the required roles.

    Usage:
        require_admin = require_role(RoleType.ADMIN, RoleType.SUPERADMIN)

        @router.get("/admin-only")
        async def admin_route(user: User = Depends(require_admin)):
            ...
    """
    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role.name not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {', '.join(r.value for r in roles)}",
            )
        return current_user

    return role_checker


# Pre-configured role dependencies
require_admin = require_role(RoleType.ADMIN, RoleType.SUPERADMIN)
require_analytics_reader = require_role(RoleType.ADMIN, RoleType.SUPERADMIN, RoleType.VIEWER)
