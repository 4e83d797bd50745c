"""Signup-click tracking and its cached summary."""

import json
import logging
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.signup_analytics import SignupAnalytics
from app.services.cache import CacheService
from app.services.geoip import GeoIpService
from app.utils.device import detect_device_type

logger = logging.getLogger(__name__)

CACHE_PREFIX = "signup-analytics"


def summary_cache_key(**query) -> str:
    params = json.dumps({k: v for k, v in query.items() if v is not None}, sort_keys=True, default=str)
    return f"{CACHE_PREFIX}:data:{params}"


class SignupAnalyticsService:
    def __init__(self, db: AsyncSession, cache: CacheService, geoip: GeoIpService, cache_ttl: int = 300):
        self.db = db
        self.cache = cache
        self.geoip = geoip
        self.cache_ttl = cache_ttl

    async def track_click(
        self,
        click_type: str,
        session_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Optional[SignupAnalytics]:
        """Record one click. Returns None (and logs) when tracking fails."""
        try:
            row = SignupAnalytics(
                session_id=session_id,
                ip_address=ip_address,
                country=await self.geoip.country_for_ip(ip_address),
                device_type=detect_device_type(user_agent),
                type=click_type,
            )
            self.db.add(row)
            await self.db.commit()
        except SQLAlchemyError as e:
            logger.error("Failed to track signup click: %s", e)
            await self.db.rollback()
            return None

        await self.cache.delete_pattern(f"{CACHE_PREFIX}:*")
        return row

    async def get_summary(self, days: int = 30, now: Optional[datetime] = None) -> dict:
        key = summary_cache_key(days=days)
        cached = await self.cache.get(key)
        if cached is not None:
            return cached

        since = (now or datetime.utcnow()) - timedelta(days=days)
        in_period = SignupAnalytics.created_at >= since

        total_clicks = (await self.db.execute(select(func.count(SignupAnalytics.id)))).scalar() or 0
        period_clicks = (await self.db.execute(select(func.count(SignupAnalytics.id)).where(in_period))).scalar() or 0
        unique_sessions = (
            await self.db.execute(select(func.count(func.distinct(SignupAnalytics.session_id))).where(in_period))
        ).scalar() or 0

        clicks = func.count(SignupAnalytics.id).label("clicks")
        by_country = await self.db.execute(
            select(SignupAnalytics.country, clicks)
            .where(in_period)
            .group_by(SignupAnalytics.country)
            .order_by(clicks.desc())
            .limit(10)
        )
        by_device = await self.db.execute(
            select(SignupAnalytics.device_type, clicks).where(in_period).group_by(SignupAnalytics.device_type)
        )
        day = func.date(SignupAnalytics.created_at).label("day")
        by_day = await self.db.execute(select(day, clicks).where(in_period).group_by(day).order_by(day))
        by_type = await self.db.execute(
            select(SignupAnalytics.type, clicks).where(in_period).group_by(SignupAnalytics.type).order_by(clicks.desc())
        )

        summary = {
            "days": days,
            "total_clicks": total_clicks,
            "period_clicks": period_clicks,
            "unique_sessions": unique_sessions,
            "by_country": [{"country": c or "Unknown", "clicks": n} for c, n in by_country.all()],
            "by_device": [{"device_type": d, "clicks": n} for d, n in by_device.all()],
            "by_day": [{"date": d if isinstance(d, str) else d.isoformat(), "clicks": n} for d, n in by_day.all()],
            "by_type": [{"type": t, "clicks": n} for t, n in by_type.all()],
        }
        await self.cache.set(key, summary, self.cache_ttl)
        return summary
