"""Periodic housekeeping: inactive-user deactivation and invitation expiry."""

import logging
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy import and_, delete, or_, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.invitation import Invitation
from app.models.user import User

logger = logging.getLogger(__name__)


async def deactivate_inactive_users(db: AsyncSession, days: int, now: Optional[datetime] = None) -> int:
    """Deactivate users idle for ``days`` days. Returns the number deactivated.

    A user is idle when their last login is older than the cutoff, or when
    they never logged in and the account itself is older than the cutoff.
    Running it twice deactivates nobody the second time.
    """
    cutoff = (now or datetime.utcnow()) - timedelta(days=days)
    result = await db.execute(
        update(User)
        .where(
            User.is_active == True,  # noqa: E712
            User.is_deleted == False,  # noqa: E712
            or_(
                User.last_logged_in < cutoff,
                and_(User.last_logged_in.is_(None), User.created_at < cutoff),
            ),
        )
        .values(is_active=False)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    count = result.rowcount or 0
    logger.info("Deactivated %d users inactive for %d days", count, days)
    return count


async def sweep_expired_invitations(db: AsyncSession, now: Optional[datetime] = None) -> int:
    """Delete pending invitations past their expiry. Returns the number removed."""
    result = await db.execute(
        delete(Invitation)
        .where(
            Invitation.is_accepted == False,  # noqa: E712
            Invitation.expires_at <= (now or datetime.utcnow()),
        )
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    count = result.rowcount or 0
    if count:
        logger.info("Removed %d expired invitations", count)
    return count
