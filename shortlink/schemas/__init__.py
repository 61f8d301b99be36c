"""Pydantic schemas."""

from shortlink.schemas.analytics import (
    ClickEvent,
    CountryCount,
    DateCount,
    DeviceCount,
    LinkStats,
    StatsLink,
    StatsResponse,
)
from shortlink.schemas.link import (
    DebugResponse,
    LinkSummary,
    ShortenRequest,
    ShortenResponse,
    UserLinksResponse,
)
from shortlink.schemas.notification import NotificationResponse
from shortlink.schemas.user import (
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UserResponse,
)

__all__ = [
    "ClickEvent",
    "CountryCount",
    "DateCount",
    "DeviceCount",
    "LinkStats",
    "StatsLink",
    "StatsResponse",
    "DebugResponse",
    "LinkSummary",
    "ShortenRequest",
    "ShortenResponse",
    "UserLinksResponse",
    "NotificationResponse",
    "LoginRequest",
    "RegisterRequest",
    "RegisterResponse",
    "TokenResponse",
    "UserResponse",
]
