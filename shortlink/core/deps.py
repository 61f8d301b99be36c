"""Dependency injection utilities for FastAPI routes."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from shortlink.core.config import Settings, get_settings
from shortlink.core.database import AsyncSessionDep
from shortlink.core.redis import RedisDep
from shortlink.core.security import decode_access_token
from shortlink.models.user import User
from shortlink.services import user as user_service
from shortlink.services.analytics import AnalyticsService
from shortlink.services.geoip import GeoIPService
from shortlink.services.link_cache import LinkCache
from shortlink.services.rate_limiter import QuotaRateLimiter

SettingsDep = Annotated[Settings, Depends(get_settings)]

bearer_scheme = HTTPBearer(auto_error=False)


async def get_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str | None:
    """Extract the bearer token from the Authorization header."""
    if credentials is None:
        return None
    return credentials.credentials


async def get_current_user_optional(
    session: AsyncSessionDep,
    token: Annotated[str | None, Depends(get_token)],
) -> User | None:
    """Get current user from token if present, otherwise return None.

    Use this for routes that work with or without authentication.
    """
    if token is None:
        return None

    token_data = decode_access_token(token)
    if token_data is None:
        return None

    return await user_service.get_user_by_id(session, token_data.user_id)


async def get_current_user(
    session: AsyncSessionDep,
    token: Annotated[str | None, Depends(get_token)],
) -> User:
    """Get current authenticated user.

    Raises HTTPException 401 if not authenticated.
    Use this for protected routes.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if token is None:
        raise credentials_exception

    token_data = decode_access_token(token)
    if token_data is None:
        raise credentials_exception

    user = await user_service.get_user_by_id(session, token_data.user_id)
    if user is None:
        raise credentials_exception

    return user


def get_link_cache(client: RedisDep, settings: SettingsDep) -> LinkCache:
    return LinkCache(client, default_ttl=settings.default_expiry_hours * 3600)


def get_rate_limiter(client: RedisDep, settings: SettingsDep) -> QuotaRateLimiter:
    return QuotaRateLimiter(
        client,
        quota=settings.rate_limit_quota,
        window_seconds=settings.rate_limit_window_seconds,
    )


def get_geoip_service(request: Request) -> GeoIPService:
    """The GeoIP service built during application startup."""
    return request.app.state.geoip


def get_analytics_service(
    geoip: Annotated[GeoIPService, Depends(get_geoip_service)],
) -> AnalyticsService:
    return AnalyticsService(geoip)


# Type aliases for dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentUserOptional = Annotated[User | None, Depends(get_current_user_optional)]
LinkCacheDep = Annotated[LinkCache, Depends(get_link_cache)]
RateLimiterDep = Annotated[QuotaRateLimiter, Depends(get_rate_limiter)]
AnalyticsDep = Annotated[AnalyticsService, Depends(get_analytics_service)]
