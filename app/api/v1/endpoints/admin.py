"""Admin analytics endpoints.

Admins, superadmins and viewers can read; only admins trigger the
inactivity check.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.deps import get_admin_analytics_service, require_admin, require_analytics_reader
from app.models.role import RoleType
from app.models.user import User
from app.schemas.admin import (
    ActivityLogEntry,
    DashboardAnalytics,
    GameAnalytics,
    GamesPopularity,
    GameWithAnalytics,
    InactiveUsersResult,
    Page,
    UserAnalytics,
    UserWithAnalytics,
)
from app.services.admin_analytics import AdminAnalyticsService
from app.services.maintenance import deactivate_inactive_users

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/dashboard", response_model=DashboardAnalytics)
async def get_dashboard(
    period: Optional[str] = Query(None, description="last24hours, last7days or last30days"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    current_user: User = Depends(require_analytics_reader),
    service: AdminAnalyticsService = Depends(get_admin_analytics_service),
):
    """Headline counts for the current period against the previous one."""
    return await service.get_dashboard_analytics(period, start_date, end_date)


@router.get("/games-analytics", response_model=Page[GameWithAnalytics])
async def get_games_analytics(
    status: Optional[str] = None,
    search: Optional[str] = None,
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=200),
    current_user: User = Depends(require_analytics_reader),
    service: AdminAnalyticsService = Depends(get_admin_analytics_service),
):
    return await service.get_games_with_analytics(status, search, page, limit)


@router.get("/games/{game_id}/analytics", response_model=GameAnalytics)
async def get_game_analytics(
    game_id: UUID,
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    current_user: User = Depends(require_analytics_reader),
    service: AdminAnalyticsService = Depends(get_admin_analytics_service),
):
    return await service.get_game_analytics(game_id, start_date, end_date)


@router.get("/games-popularity", response_model=GamesPopularity)
async def get_games_popularity(
    period: Optional[str] = None,
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(require_analytics_reader),
    service: AdminAnalyticsService = Depends(get_admin_analytics_service),
):
    return await service.get_games_popularity(period, start_date, end_date, limit)


@router.get("/users-analytics", response_model=Page[UserWithAnalytics])
async def get_users_analytics(
    role: Optional[RoleType] = None,
    is_active: Optional[bool] = Query(None, alias="isActive"),
    search: Optional[str] = None,
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=200),
    current_user: User = Depends(require_analytics_reader),
    service: AdminAnalyticsService = Depends(get_admin_analytics_service),
):
    return await service.get_users_with_analytics(role, is_active, search, page, limit)


@router.get("/users/{user_id}/analytics", response_model=UserAnalytics)
async def get_user_analytics(
    user_id: UUID,
    current_user: User = Depends(require_analytics_reader),
    service: AdminAnalyticsService = Depends(get_admin_analytics_service),
):
    return await service.get_user_analytics(user_id)


@router.get("/user-activity-log", response_model=Page[ActivityLogEntry])
async def get_user_activity_log(
    user_id: Optional[UUID] = Query(None, alias="userId"),
    activity_type: Optional[str] = Query(None, alias="activityType"),
    search: Optional[str] = None,
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=200),
    current_user: User = Depends(require_analytics_reader),
    service: AdminAnalyticsService = Depends(get_admin_analytics_service),
):
    return await service.get_user_activity_log(user_id, activity_type, search, page, limit)


@router.post("/check-inactive-users", response_model=InactiveUsersResult)
async def check_inactive_users(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Run the inactivity deactivation now instead of waiting for the daily job."""
    deactivated = await deactivate_inactive_users(db, settings.INACTIVITY_DAYS)
    logger.info("Inactive user check triggered by %s: %d deactivated", current_user.email, deactivated)
    return {"deactivated": deactivated}
