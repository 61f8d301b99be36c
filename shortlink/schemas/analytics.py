"""Pydantic schemas for click events and analytics responses."""

from datetime import datetime

from pydantic import BaseModel, Field

from shortlink.core.database import utcnow


class ClickEvent(BaseModel):
    """Request metadata captured when a short link is redirected."""

    short_code: str = Field(description="The short code that was accessed")
    clicked_at: datetime = Field(
        default_factory=utcnow,
        description="Timestamp when the click occurred (UTC)",
    )
    ip_address: str | None = Field(default=None, description="Client IP address")
    user_agent: str | None = Field(default=None, description="HTTP User-Agent header")
    referrer: str | None = Field(default=None, description="HTTP Referer header")


class DateCount(BaseModel):
    date: str = Field(description="Day in YYYY-MM-DD form")
    count: int


class CountryCount(BaseModel):
    country: str
    count: int


class DeviceCount(BaseModel):
    device_type: str
    count: int


class LinkStats(BaseModel):
    """Rollup of a link's clicks as of query time."""

    total_clicks: int
    clicks_by_date: list[DateCount]
    top_countries: list[CountryCount]
    device_stats: list[DeviceCount]


class StatsLink(BaseModel):
    id: int
    short_code: str
    original_url: str
    created_at: datetime
    expires_at: datetime


class StatsResponse(BaseModel):
    """Response of `GET /stats/{code}`."""

    url: StatsLink
    stats: LinkStats
