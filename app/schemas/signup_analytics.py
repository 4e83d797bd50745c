"""Pydantic schemas for signup-click tracking."""

from pydantic import Field

from app.schemas.base import CamelModel


class SignupClick(CamelModel):
    session_id: str | None = None
    type: str = Field(min_length=1)


class SignupClickResult(CamelModel):
    tracked: bool


class CountryClicks(CamelModel):
    country: str
    clicks: int


class DeviceClicks(CamelModel):
    device_type: str
    clicks: int


class DayClicks(CamelModel):
    date: str
    clicks: int


class TypeClicks(CamelModel):
    type: str
    clicks: int


class SignupAnalyticsSummary(CamelModel):
    days: int
    total_clicks: int
    period_clicks: int
    unique_sessions: int
    by_country: list[CountryClicks]
    by_device: list[DeviceClicks]
    by_day: list[DayClicks]
    by_type: list[TypeClicks]
