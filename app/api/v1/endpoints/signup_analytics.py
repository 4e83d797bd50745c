"""Signup-click tracking endpoints."""

import logging
from fastapi import APIRouter, Depends, Query, Request

from app.core.deps import get_signup_analytics_service, require_analytics_reader
from app.models.user import User
from app.schemas.signup_analytics import SignupAnalyticsSummary, SignupClick, SignupClickResult
from app.services.signup_analytics import SignupAnalyticsService

router = APIRouter()
logger = logging.getLogger(__name__)


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


@router.post("/click", response_model=SignupClickResult)
async def track_click(
    data: SignupClick,
    request: Request,
    service: SignupAnalyticsService = Depends(get_signup_analytics_service),
):
    """Track a click on a signup entry point. Never fails the caller."""
    row = await service.track_click(
        data.type,
        session_id=data.session_id,
        ip_address=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return SignupClickResult(tracked=row is not None)


@router.get("/data", response_model=SignupAnalyticsSummary)
async def get_signup_analytics(
    days: int = Query(30, ge=1, le=365),
    current_user: User = Depends(require_analytics_reader),
    service: SignupAnalyticsService = Depends(get_signup_analytics_service),
):
    return await service.get_summary(days=days)
