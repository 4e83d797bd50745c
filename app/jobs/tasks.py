"""arq job functions.

Each job receives the arq ``ctx`` dict; ``ctx["session_factory"]`` is set
by the worker's startup hook (or by the inline queue in development).
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID
from arq import Retry

from app.core.config import settings
from app.core.errors import NotFoundError
from app.models.analytics import Analytics
from app.services.analytics import build_activity, end_activity
from app.services.maintenance import deactivate_inactive_users, sweep_expired_invitations

logger = logging.getLogger(__name__)

MAX_TRIES = 5


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _retry_or_raise(ctx: dict, exc: Exception) -> None:
    """Hand a failed job back to arq for a delayed retry.

    Inline runs have no queue to retry on, so the error propagates.
    """
    job_try = ctx.get("job_try", 1)
    if ctx.get("inline") or job_try >= MAX_TRIES:
        raise exc
    raise Retry(defer=job_try * 5) from exc


async def record_analytics(
    ctx: dict,
    analytics_id: str,
    activity_type: str,
    user_id: Optional[str] = None,
    session_id: Optional[str] = None,
    game_id: Optional[str] = None,
    start_time: Optional[str] = None,
    end_time: Optional[str] = None,
) -> str:
    """Insert one analytics row. Re-delivery of an already written row is a no-op."""
    async with ctx["session_factory"]() as db:
        try:
            row = build_activity(
                activity_type,
                user_id=UUID(user_id) if user_id else None,
                session_id=session_id,
                game_id=UUID(game_id) if game_id else None,
                start_time=_parse_time(start_time),
                end_time=_parse_time(end_time),
                analytics_id=UUID(analytics_id),
            )
            existing = await db.get(Analytics, row.id)
            if existing:
                return analytics_id
            db.add(row)
            await db.commit()
        except Exception as e:
            logger.error("Failed to write analytics %s: %s", analytics_id, e)
            await db.rollback()
            _retry_or_raise(ctx, e)
    return analytics_id


async def close_analytics_session(ctx: dict, analytics_id: str, end_time: Optional[str] = None) -> str:
    """Set the end time of a session. Retried while the opening row is still queued."""
    async with ctx["session_factory"]() as db:
        try:
            await end_activity(db, UUID(analytics_id), _parse_time(end_time))
        except NotFoundError as e:
            logger.warning("Analytics %s not written yet (try %s)", analytics_id, ctx.get("job_try", 1))
            _retry_or_raise(ctx, e)
        except Exception as e:
            logger.error("Failed to close analytics %s: %s", analytics_id, e)
            await db.rollback()
            _retry_or_raise(ctx, e)
    return analytics_id


async def check_inactive_users(ctx: dict) -> int:
    """Daily cron: deactivate idle accounts. Failures are logged, not raised."""
    async with ctx["session_factory"]() as db:
        try:
            return await deactivate_inactive_users(db, settings.INACTIVITY_DAYS)
        except Exception:
            logger.exception("Inactive user check failed")
            await db.rollback()
            return 0


async def sweep_invitations(ctx: dict) -> int:
    """Hourly cron: drop expired pending invitations."""
    async with ctx["session_factory"]() as db:
        try:
            return await sweep_expired_invitations(db)
        except Exception:
            logger.exception("Invitation sweep failed")
            await db.rollback()
            return 0


JOB_FUNCTIONS = {
    fn.__name__: fn
    for fn in (record_analytics, close_analytics_session, check_inactive_users, sweep_invitations)
}
