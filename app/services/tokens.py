"""JWT issuing and validation for access and refresh tokens."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.core.errors import AuthenticationError
from app.models.user import User

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ACCESS = "access"
REFRESH = "refresh"


@dataclass
class AuthTokens:
    access_token: str
    refresh_token: str


class TokenService:
    """Signs access and refresh tokens with separate secrets and lifetimes."""

    def __init__(self, settings: Settings):
        self.access_secret = settings.JWT_SECRET_KEY
        self.refresh_secret = settings.JWT_REFRESH_SECRET_KEY
        self.access_ttl = timedelta(minutes=settings.JWT_ACCESS_EXPIRE_MINUTES)
        self.refresh_ttl = timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS)

    def _encode(self, user: User, token_type: str, secret: str, ttl: timedelta) -> str:
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "role": user.role_name,
            "type": token_type,
            "exp": datetime.utcnow() + ttl,
        }
        return jwt.encode(payload, secret, algorithm=ALGORITHM)

    def create_tokens(self, user: User) -> AuthTokens:
        return AuthTokens(
            access_token=self._encode(user, ACCESS, self.access_secret, self.access_ttl),
            refresh_token=self._encode(user, REFRESH, self.refresh_secret, self.refresh_ttl),
        )

    def _decode(self, token: str, secret: str, token_type: str) -> Optional[dict]:
        try:
            payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
        except JWTError as e:
            logger.warning("JWT decode error: %s", e)
            return None
        if payload.get("type") != token_type or not payload.get("sub"):
            logger.warning("Rejected %s token with wrong type claim", token_type)
            return None
        return payload

    def decode_access_token(self, token: str) -> Optional[dict]:
        """Decode and validate an access token. Returns None when invalid."""
        return self._decode(token, self.access_secret, ACCESS)

    def decode_refresh_token(self, token: str) -> Optional[dict]:
        """Decode and validate a refresh token. Returns None when invalid."""
        return self._decode(token, self.refresh_secret, REFRESH)

    async def refresh(self, db: AsyncSession, refresh_token: str) -> AuthTokens:
        """Re-issue both tokens for the active user a refresh token names."""
        payload = self.decode_refresh_token(refresh_token)
        if not payload:
            raise AuthenticationError("Invalid refresh token")

        result = await db.execute(
            select(User).where(
                User.id == UUID(payload["sub"]),
                User.is_deleted == False,  # noqa: E712
            )
        )
        user = result.scalar_one_or_none()
        if not user or not user.is_active:
            raise AuthenticationError("Invalid refresh token")

        return self.create_tokens(user)
