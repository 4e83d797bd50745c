"""Gameplay analytics ingestion.

Writes go through the job queue; the endpoints answer 202 with the id the
row will be stored under.
"""

import logging
import uuid
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends

from app.core.deps import get_current_user_optional, get_job_queue
from app.core.errors import ValidationError
from app.models.user import User
from app.schemas.analytics import AnalyticsCreate, AnalyticsEnd, AnalyticsQueued
from app.services.job_queue import JobQueue

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/", response_model=AnalyticsQueued, status_code=202)
async def create_analytics(
    data: AnalyticsCreate,
    current_user: Optional[User] = Depends(get_current_user_optional),
    queue: JobQueue = Depends(get_job_queue),
):
    """Record a gameplay event for a signed-in user or an anonymous session."""
    if not current_user and not data.session_id:
        raise ValidationError("sessionId is required for anonymous analytics")

    analytics_id = uuid.uuid4()
    job_id = await queue.enqueue(
        "record_analytics",
        analytics_id=str(analytics_id),
        activity_type=data.activity_type,
        user_id=str(current_user.id) if current_user else None,
        session_id=data.session_id,
        game_id=str(data.game_id) if data.game_id else None,
        start_time=data.start_time.isoformat() if data.start_time else None,
        end_time=data.end_time.isoformat() if data.end_time else None,
    )
    return AnalyticsQueued(id=analytics_id, job_id=job_id)


@router.post("/{analytics_id}/end", response_model=AnalyticsQueued, status_code=202)
async def end_analytics(
    analytics_id: UUID,
    data: Optional[AnalyticsEnd] = None,
    queue: JobQueue = Depends(get_job_queue),
):
    end_time = data.end_time if data and data.end_time else None
    job_id = await queue.enqueue(
        "close_analytics_session",
        analytics_id=str(analytics_id),
        end_time=end_time.isoformat() if end_time else None,
    )
    return AnalyticsQueued(id=analytics_id, job_id=job_id)
