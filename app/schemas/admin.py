"""Pydantic schemas for admin analytics endpoints."""

from datetime import datetime
from typing import Generic, List, Optional, TypeVar
from uuid import UUID

from app.schemas.base import CamelModel

T = TypeVar("T")


class Page(CamelModel, Generic[T]):
    """A filtered list; ``page``/``limit`` are null when unpaginated."""
    items: List[T]
    total: int
    page: Optional[int] = None
    limit: Optional[int] = None


class MetricTrend(CamelModel):
    total: float
    current: float
    previous: float
    percentage_change: float


class PeriodInfo(CamelModel):
    period: Optional[str] = None
    current_period_start: datetime
    current_period_end: datetime
    previous_period_start: datetime
    previous_period_end: datetime


class GameRef(CamelModel):
    id: UUID
    title: str
    sessions: int


class DashboardAnalytics(PeriodInfo):
    unique_visitors: MetricTrend
    registered_users: MetricTrend
    active_users: MetricTrend
    inactive_users: int
    total_games: MetricTrend
    total_sessions: MetricTrend
    total_time_played_minutes: MetricTrend
    avg_session_duration_minutes: MetricTrend
    most_popular_game: Optional[GameRef] = None


class GameWithAnalytics(CamelModel):
    id: UUID
    title: str
    status: str
    created_at: Optional[datetime] = None
    unique_players: int
    total_sessions: int
    total_play_time_minutes: float


class GameSummary(CamelModel):
    id: UUID
    title: str
    status: str


class TopPlayer(CamelModel):
    user_id: UUID
    name: str
    email: str
    sessions: int
    play_time_minutes: float


class DailyPlayTime(CamelModel):
    date: str
    sessions: int
    play_time_minutes: float


class GameAnalytics(CamelModel):
    game: GameSummary
    unique_players: int
    total_sessions: int
    total_play_time_minutes: float
    avg_session_duration_minutes: float
    top_players: List[TopPlayer]
    daily_play_time: List[DailyPlayTime]


class GamePopularity(CamelModel):
    id: UUID
    title: str
    current_sessions: int
    previous_sessions: int
    percentage_change: float


class GamesPopularity(PeriodInfo):
    items: List[GamePopularity]


class AdminUserOut(CamelModel):
    id: UUID
    first_name: str
    last_name: str
    email: str
    role: str
    is_active: bool
    last_logged_in: Optional[datetime] = None
    created_at: Optional[datetime] = None


class UserWithAnalytics(AdminUserOut):
    total_sessions: int
    total_play_time_minutes: float
    last_played: Optional[datetime] = None
    most_played_game: Optional[GameRef] = None


class UserGameStats(CamelModel):
    id: UUID
    title: str
    sessions: int
    play_time_minutes: float
    last_played: Optional[datetime] = None


class ActivityOut(CamelModel):
    id: UUID
    activity_type: str
    game_id: Optional[UUID] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = None


class UserAnalytics(CamelModel):
    user: AdminUserOut
    total_sessions: int
    total_play_time_minutes: float
    games: List[UserGameStats]
    recent_activity: List[ActivityOut]


class ActivityLogEntry(ActivityOut):
    user_id: UUID
    user_email: str
    user_name: str
    game_title: Optional[str] = None


class InactiveUsersResult(CamelModel):
    deactivated: int
