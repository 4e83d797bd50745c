"""Read-only aggregations behind the admin dashboard.

Each method is an independent composition over users, games, gameplay
analytics and signup clicks. Soft-deleted users never show up.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID
from sqlalchemy import Select, and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError, ValidationError
from app.models.analytics import Analytics
from app.models.game import Game
from app.models.role import Role, RoleType
from app.models.signup_analytics import SignupAnalytics
from app.models.user import User

logger = logging.getLogger(__name__)

PERIODS = {
    "last24hours": timedelta(hours=24),
    "last7days": timedelta(days=7),
    "last30days": timedelta(days=30),
}
DEFAULT_PERIOD = "last24hours"


@dataclass
class PeriodWindow:
    current_start: datetime
    current_end: datetime
    previous_start: datetime
    previous_end: datetime

    def as_dict(self) -> dict:
        return {
            "current_period_start": self.current_start,
            "current_period_end": self.current_end,
            "previous_period_start": self.previous_start,
            "previous_period_end": self.previous_end,
        }


def resolve_period(
    period: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> PeriodWindow:
    """Turn a named period or a custom range into current/previous windows.

    The previous window has the same length and ends where the current one
    starts.
    """
    now = now or datetime.utcnow()
    if bool(start_date) != bool(end_date):
        raise ValidationError("startDate and endDate must be given together")
    if start_date and end_date:
        if end_date <= start_date:
            raise ValidationError("endDate must be after startDate")
        length = end_date - start_date
        return PeriodWindow(start_date, end_date, start_date - length, start_date)

    name = period or DEFAULT_PERIOD
    if name not in PERIODS:
        raise ValidationError(f"Unknown period '{name}'. Use one of: {', '.join(PERIODS)}")
    length = PERIODS[name]
    return PeriodWindow(now - length, now, now - 2 * length, now - length)


def percentage_change(current: float, previous: float) -> float:
    """Relative change in percent, clamped to [-100, 100]. Zero when there is no baseline."""
    if not previous:
        return 0
    change = (current - previous) / previous * 100
    return round(max(-100.0, min(100.0, change)), 2)


def paginate(query: Select, page: Optional[int], limit: Optional[int]) -> Select:
    """Apply offset/limit only when both ``page`` and ``limit`` are given."""
    if page and limit:
        return query.offset((page - 1) * limit).limit(limit)
    return query


def _minutes(seconds) -> float:
    return round((seconds or 0) / 60, 2)


def _day(value) -> str:
    return value if isinstance(value, str) else value.isoformat()


def _visible_activity():
    """Analytics rows that are anonymous or belong to a non-deleted user."""
    deleted_ids = select(User.id).where(User.is_deleted == True)  # noqa: E712
    return or_(Analytics.user_id.is_(None), Analytics.user_id.notin_(deleted_ids))


def _in_window(column, start: datetime, end: datetime):
    return and_(column >= start, column < end)


class AdminAnalyticsService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _scalar(self, query) -> float:
        return (await self.db.execute(query)).scalar() or 0

    async def _trend(self, total_query, windowed, window: PeriodWindow) -> dict:
        """``windowed(start, end)`` builds the count for one window."""
        total = await self._scalar(total_query)
        current = await self._scalar(windowed(window.current_start, window.current_end))
        previous = await self._scalar(windowed(window.previous_start, window.previous_end))
        return {
            "total": total,
            "current": current,
            "previous": previous,
            "percentage_change": percentage_change(current, previous),
        }

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    async def get_dashboard_analytics(
        self,
        period: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> dict:
        window = resolve_period(period, start_date, end_date, now)
        live_users = User.is_deleted == False  # noqa: E712
        game_sessions = and_(Analytics.game_id.isnot(None), _visible_activity())

        visitors = func.count(func.distinct(SignupAnalytics.session_id))
        unique_visitors = await self._trend(
            select(visitors),
            lambda s, e: select(visitors).where(_in_window(SignupAnalytics.created_at, s, e)),
            window,
        )
        registered_users = await self._trend(
            select(func.count(User.id)).where(live_users),
            lambda s, e: select(func.count(User.id)).where(live_users, _in_window(User.created_at, s, e)),
            window,
        )
        active_users = await self._trend(
            select(func.count(User.id)).where(live_users, User.is_active == True),  # noqa: E712
            lambda s, e: select(func.count(User.id)).where(live_users, _in_window(User.last_logged_in, s, e)),
            window,
        )
        inactive_users = await self._scalar(
            select(func.count(User.id)).where(live_users, User.is_active == False)  # noqa: E712
        )
        total_games = await self._trend(
            select(func.count(Game.id)),
            lambda s, e: select(func.count(Game.id)).where(_in_window(Game.created_at, s, e)),
            window,
        )
        total_sessions = await self._trend(
            select(func.count(Analytics.id)).where(game_sessions),
            lambda s, e: select(func.count(Analytics.id)).where(game_sessions, _in_window(Analytics.start_time, s, e)),
            window,
        )
        play_seconds = await self._trend(
            select(func.sum(Analytics.duration)).where(game_sessions),
            lambda s, e: select(func.sum(Analytics.duration)).where(game_sessions, _in_window(Analytics.start_time, s, e)),
            window,
        )
        avg_seconds = await self._trend(
            select(func.avg(Analytics.duration)).where(game_sessions),
            lambda s, e: select(func.avg(Analytics.duration)).where(game_sessions, _in_window(Analytics.start_time, s, e)),
            window,
        )

        return {
            "period": "custom" if start_date and end_date else period or DEFAULT_PERIOD,
            **window.as_dict(),
            "unique_visitors": unique_visitors,
            "registered_users": registered_users,
            "active_users": active_users,
            "inactive_users": inactive_users,
            "total_games": total_games,
            "total_sessions": total_sessions,
            "total_time_played_minutes": {
                **play_seconds,
                "total": _minutes(play_seconds["total"]),
                "current": _minutes(play_seconds["current"]),
                "previous": _minutes(play_seconds["previous"]),
            },
            "avg_session_duration_minutes": {
                **avg_seconds,
                "total": _minutes(avg_seconds["total"]),
                "current": _minutes(avg_seconds["current"]),
                "previous": _minutes(avg_seconds["previous"]),
            },
            "most_popular_game": await self._most_popular_game(window),
        }

    async def _most_popular_game(self, window: PeriodWindow) -> Optional[dict]:
        sessions = func.count(Analytics.id).label("sessions")
        result = await self.db.execute(
            select(Game.id, Game.title, sessions)
            .join(Analytics, Analytics.game_id == Game.id)
            .where(_visible_activity(), _in_window(Analytics.start_time, window.current_start, window.current_end))
            .group_by(Game.id, Game.title)
            .order_by(sessions.desc())
            .limit(1)
        )
        row = result.first()
        if not row:
            return None
        return {"id": row.id, "title": row.title, "sessions": row.sessions}

    # ------------------------------------------------------------------
    # Games
    # ------------------------------------------------------------------

    async def get_games_with_analytics(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> dict:
        filters = []
        if status:
            filters.append(Game.status == status)
        if search:
            filters.append(Game.title.ilike(f"%{search}%"))

        total = await self._scalar(select(func.count(Game.id)).where(*filters))

        query = (
            select(
                Game,
                func.count(func.distinct(Analytics.user_id)).label("unique_players"),
                func.count(Analytics.id).label("total_sessions"),
                func.coalesce(func.sum(Analytics.duration), 0).label("total_play_time"),
            )
            .outerjoin(Analytics, and_(Analytics.game_id == Game.id, _visible_activity()))
            .where(*filters)
            .group_by(Game.id)
            .order_by(Game.created_at.desc())
        )
        result = await self.db.execute(paginate(query, page, limit))

        items = [
            {
                "id": game.id,
                "title": game.title,
                "status": game.status,
                "created_at": game.created_at,
                "unique_players": unique_players,
                "total_sessions": total_sessions,
                "total_play_time_minutes": _minutes(total_play_time),
            }
            for game, unique_players, total_sessions, total_play_time in result.all()
        ]
        return {"items": items, "total": total, "page": page, "limit": limit}

    async def get_game_analytics(
        self,
        game_id: UUID,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> dict:
        game = await self.db.get(Game, game_id)
        if not game:
            raise NotFoundError("Game not found")

        scope = [Analytics.game_id == game_id, _visible_activity()]
        if start_date:
            scope.append(Analytics.start_time >= start_date)
        if end_date:
            scope.append(Analytics.start_time < end_date)

        summary = (
            await self.db.execute(
                select(
                    func.count(func.distinct(Analytics.user_id)),
                    func.count(Analytics.id),
                    func.sum(Analytics.duration),
                    func.avg(Analytics.duration),
                ).where(*scope)
            )
        ).one()

        play_time = func.coalesce(func.sum(Analytics.duration), 0).label("play_time")
        top_players = await self.db.execute(
            select(User.id, User.first_name, User.last_name, User.email, func.count(Analytics.id).label("sessions"), play_time)
            .join(User, User.id == Analytics.user_id)
            .where(*scope)
            .group_by(User.id, User.first_name, User.last_name, User.email)
            .order_by(play_time.desc())
            .limit(10)
        )

        day = func.date(Analytics.start_time).label("day")
        daily = await self.db.execute(
            select(day, func.count(Analytics.id), func.coalesce(func.sum(Analytics.duration), 0))
            .where(*scope)
            .group_by(day)
            .order_by(day)
        )

        return {
            "game": {"id": game.id, "title": game.title, "status": game.status},
            "unique_players": summary[0] or 0,
            "total_sessions": summary[1] or 0,
            "total_play_time_minutes": _minutes(summary[2]),
            "avg_session_duration_minutes": _minutes(summary[3]),
            "top_players": [
                {
                    "user_id": row.id,
                    "name": f"{row.first_name} {row.last_name}",
                    "email": row.email,
                    "sessions": row.sessions,
                    "play_time_minutes": _minutes(row.play_time),
                }
                for row in top_players.all()
            ],
            "daily_play_time": [
                {"date": _day(d), "sessions": sessions, "play_time_minutes": _minutes(seconds)}
                for d, sessions, seconds in daily.all()
            ],
        }

    async def get_games_popularity(
        self,
        period: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: int = 10,
        now: Optional[datetime] = None,
    ) -> dict:
        window = resolve_period(period, start_date, end_date, now)

        async def sessions_by_game(start: datetime, end: datetime) -> dict:
            result = await self.db.execute(
                select(Analytics.game_id, func.count(Analytics.id))
                .where(Analytics.game_id.isnot(None), _visible_activity(), _in_window(Analytics.start_time, start, end))
                .group_by(Analytics.game_id)
            )
            return dict(result.all())

        current = await sessions_by_game(window.current_start, window.current_end)
        previous = await sessions_by_game(window.previous_start, window.previous_end)
        games = (await self.db.execute(select(Game).where(Game.id.in_(set(current) | set(previous))))).scalars().all()

        items = sorted(
            (
                {
                    "id": game.id,
                    "title": game.title,
                    "current_sessions": current.get(game.id, 0),
                    "previous_sessions": previous.get(game.id, 0),
                    "percentage_change": percentage_change(current.get(game.id, 0), previous.get(game.id, 0)),
                }
                for game in games
            ),
            key=lambda item: item["current_sessions"],
            reverse=True,
        )
        period_name = "custom" if start_date and end_date else period or DEFAULT_PERIOD
        return {"period": period_name, **window.as_dict(), "items": items[:limit]}

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def get_users_with_analytics(
        self,
        role: Optional[RoleType] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> dict:
        filters = [User.is_deleted == False]  # noqa: E712
        if role:
            filters.append(User.role_id.in_(select(Role.id).where(Role.name == role)))
        if is_active is not None:
            filters.append(User.is_active == is_active)
        if search:
            pattern = f"%{search}%"
            filters.append(or_(User.first_name.ilike(pattern), User.last_name.ilike(pattern), User.email.ilike(pattern)))

        total = await self._scalar(select(func.count(User.id)).where(*filters))
        users = (
            await self.db.execute(paginate(select(User).where(*filters).order_by(User.created_at.desc()), page, limit))
        ).scalars().all()

        user_ids = [u.id for u in users]
        stats = {}
        favourite = {}
        if user_ids:
            result = await self.db.execute(
                select(
                    Analytics.user_id,
                    func.count(Analytics.id),
                    func.coalesce(func.sum(Analytics.duration), 0),
                    func.max(Analytics.start_time),
                )
                .where(Analytics.user_id.in_(user_ids), Analytics.game_id.isnot(None))
                .group_by(Analytics.user_id)
            )
            stats = {uid: (sessions, seconds, last) for uid, sessions, seconds, last in result.all()}

            per_game = await self.db.execute(
                select(Analytics.user_id, Game.id, Game.title, func.count(Analytics.id))
                .join(Game, Game.id == Analytics.game_id)
                .where(Analytics.user_id.in_(user_ids))
                .group_by(Analytics.user_id, Game.id, Game.title)
            )
            for uid, game_id, title, sessions in per_game.all():
                if uid not in favourite or sessions > favourite[uid]["sessions"]:
                    favourite[uid] = {"id": game_id, "title": title, "sessions": sessions}

        items = []
        for user in users:
            sessions, seconds, last_played = stats.get(user.id, (0, 0, None))
            items.append({
                "id": user.id,
                "first_name": user.first_name,
                "last_name": user.last_name,
                "email": user.email,
                "role": user.role_name,
                "is_active": user.is_active,
                "last_logged_in": user.last_logged_in,
                "created_at": user.created_at,
                "total_sessions": sessions,
                "total_play_time_minutes": _minutes(seconds),
                "last_played": last_played,
                "most_played_game": favourite.get(user.id),
            })
        return {"items": items, "total": total, "page": page, "limit": limit}

    async def get_user_analytics(self, user_id: UUID) -> dict:
        user = await self.db.get(User, user_id)
        if not user or user.is_deleted:
            raise NotFoundError("User not found")

        play_time = func.coalesce(func.sum(Analytics.duration), 0)
        per_game = await self.db.execute(
            select(Game.id, Game.title, func.count(Analytics.id), play_time, func.max(Analytics.start_time))
            .join(Game, Game.id == Analytics.game_id)
            .where(Analytics.user_id == user_id)
            .group_by(Game.id, Game.title)
            .order_by(play_time.desc())
        )
        games = [
            {
                "id": game_id,
                "title": title,
                "sessions": sessions,
                "play_time_minutes": _minutes(seconds),
                "last_played": last_played,
            }
            for game_id, title, sessions, seconds, last_played in per_game.all()
        ]

        recent = await self.db.execute(
            select(Analytics).where(Analytics.user_id == user_id).order_by(Analytics.start_time.desc()).limit(20)
        )

        return {
            "user": {
                "id": user.id,
                "first_name": user.first_name,
                "last_name": user.last_name,
                "email": user.email,
                "role": user.role_name,
                "is_active": user.is_active,
                "last_logged_in": user.last_logged_in,
                "created_at": user.created_at,
            },
            "total_sessions": sum(g["sessions"] for g in games),
            "total_play_time_minutes": round(sum(g["play_time_minutes"] for g in games), 2),
            "games": games,
            "recent_activity": [
                {
                    "id": row.id,
                    "activity_type": row.activity_type,
                    "game_id": row.game_id,
                    "start_time": row.start_time,
                    "end_time": row.end_time,
                    "duration": row.duration,
                }
                for row in recent.scalars().all()
            ],
        }

    async def get_user_activity_log(
        self,
        user_id: Optional[UUID] = None,
        activity_type: Optional[str] = None,
        search: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> dict:
        filters = [Analytics.user_id.isnot(None), User.is_deleted == False]  # noqa: E712
        if user_id:
            filters.append(Analytics.user_id == user_id)
        if activity_type:
            filters.append(Analytics.activity_type == activity_type)
        if search:
            pattern = f"%{search}%"
            filters.append(or_(User.first_name.ilike(pattern), User.last_name.ilike(pattern), User.email.ilike(pattern)))

        total = await self._scalar(
            select(func.count(Analytics.id)).join(User, User.id == Analytics.user_id).where(*filters)
        )
        query = (
            select(Analytics, User.email, User.first_name, User.last_name, Game.title)
            .join(User, User.id == Analytics.user_id)
            .outerjoin(Game, Game.id == Analytics.game_id)
            .where(*filters)
            .order_by(Analytics.start_time.desc())
        )
        result = await self.db.execute(paginate(query, page, limit))

        items = [
            {
                "id": row.id,
                "user_id": row.user_id,
                "user_email": email,
                "user_name": f"{first_name} {last_name}",
                "activity_type": row.activity_type,
                "game_id": row.game_id,
                "game_title": title,
                "start_time": row.start_time,
                "end_time": row.end_time,
                "duration": row.duration,
            }
            for row, email, first_name, last_name, title in result.all()
        ]
        return {"items": items, "total": total, "page": page, "limit": limit}
