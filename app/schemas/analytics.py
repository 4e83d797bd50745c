"""Pydantic schemas for gameplay analytics ingestion."""

from datetime import datetime
from uuid import UUID
from pydantic import Field

from app.schemas.base import CamelModel
from app.services.analytics import GAME_SESSION


class AnalyticsCreate(CamelModel):
    activity_type: str = Field(default=GAME_SESSION, min_length=1)
    game_id: UUID | None = None
    session_id: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None


class AnalyticsEnd(CamelModel):
    end_time: datetime | None = None


class AnalyticsQueued(CamelModel):
    id: UUID
    job_id: str
    status: str = "queued"
