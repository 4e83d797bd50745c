"""Gameplay and account activity recording."""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.models.analytics import Analytics

logger = logging.getLogger(__name__)

SIGNED_UP = "Signed up"
SIGNED_UP_FROM_INVITATION = "Signed up from invitation"
LOGGED_IN = "Logged in"
GAME_SESSION = "Played game"


def build_activity(
    activity_type: str,
    user_id: Optional[UUID] = None,
    session_id: Optional[str] = None,
    game_id: Optional[UUID] = None,
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
    analytics_id: Optional[UUID] = None,
) -> Analytics:
    """Build an unsaved analytics row. Duration is filled in on flush."""
    row = Analytics(
        user_id=user_id,
        session_id=session_id,
        game_id=game_id,
        activity_type=activity_type,
        start_time=start_time or datetime.utcnow(),
        end_time=end_time,
    )
    if analytics_id:
        row.id = analytics_id
    return row


async def end_activity(db: AsyncSession, analytics_id: UUID, end_time: Optional[datetime] = None) -> Analytics:
    """Close an open session. The duration is recomputed on update."""
    row = await db.get(Analytics, analytics_id)
    if not row:
        raise NotFoundError("Analytics record not found")
    row.end_time = end_time or datetime.utcnow()
    await db.commit()
    logger.debug("Closed analytics %s after %ss", row.id, row.duration)
    return row
