"""Link endpoints: shorten, cache debug, stats and the owner's list."""

import math

import structlog
from fastapi import APIRouter, Request

from shortlink.core.database import AsyncSessionDep
from shortlink.core.deps import (
    AnalyticsDep,
    CurrentUser,
    CurrentUserOptional,
    LinkCacheDep,
    RateLimiterDep,
    SettingsDep,
)
from shortlink.core.exceptions import CacheUnavailableError, LinkNotFoundError, RateLimitedError
from shortlink.core.observability import record_rate_limited
from shortlink.core.rate_limit import get_real_client_ip
from shortlink.models.user import User
from shortlink.schemas.analytics import StatsLink, StatsResponse
from shortlink.schemas.link import (
    DebugResponse,
    LinkSummary,
    ShortenRequest,
    ShortenResponse,
    UserLinksResponse,
)
from shortlink.services import link as link_service
from shortlink.services.shortener import LinkShortener

logger = structlog.get_logger()

router = APIRouter(tags=["links"])


def quota_key(request: Request, user: User | None) -> str:
    """Identity the create quota is counted against."""
    if user is not None:
        return f"user:{user.id}"
    return f"ip:{get_real_client_ip(request)}"


@router.post("/shorten", response_model=ShortenResponse)
async def shorten_url(
    request: Request,
    body: ShortenRequest,
    session: AsyncSessionDep,
    cache: LinkCacheDep,
    quota: RateLimiterDep,
    settings: SettingsDep,
    user: CurrentUserOptional,
) -> ShortenResponse:
    """Create a short link.

    The client's quota is checked up front but only spent once the link is
    persisted and cached, so rejected requests cost nothing.
    """
    client_key = quota_key(request, user)
    decision = await quota.check(client_key)
    if not decision.allowed:
        record_rate_limited()
        raise RateLimitedError(decision.retry_after)

    shortener = LinkShortener(session, cache, settings)
    link = await shortener.shorten(
        body.url,
        custom_code=body.custom_short,
        expiry_hours=body.expiry,
        owner_id=user.id if user else None,
    )

    try:
        decision = await quota.consume(client_key)
    except CacheUnavailableError as e:
        # The link exists; report the pre-create view of the window.
        logger.warning("Failed to record quota usage", client_key=client_key, error=str(e.__cause__))

    return ShortenResponse(
        id=link.id,
        short_code=link.short_code,
        original_url=link.original_url,
        short_url=f"{settings.public_base_url}/{link.short_code}",
        expiry=link.expiry_hours,
        created_at=link.created_at,
        expires_at=link.expires_at,
        rate_limit=decision.remaining,
        rate_reset=math.ceil(decision.retry_after / 60),
    )


@router.get("/debug/{short_code}", response_model=DebugResponse)
async def debug_cached_link(short_code: str, cache: LinkCacheDep) -> DebugResponse:
    """Show what the link cache holds for a code, without touching the database."""
    url = await cache.get(short_code)
    if url is None:
        raise LinkNotFoundError()
    return DebugResponse(id=short_code, original_url=url)


@router.get("/stats/{short_code}", response_model=StatsResponse)
async def get_link_stats(
    short_code: str,
    user: CurrentUser,
    session: AsyncSessionDep,
    analytics: AnalyticsDep,
) -> StatsResponse:
    """Click rollups for a link, computed at request time."""
    link = await link_service.get_link_by_short_code(session, short_code)
    if link is None or (link.owner_id is not None and link.owner_id != user.id):
        raise LinkNotFoundError()

    stats = await analytics.get_stats(session, link)
    return StatsResponse(
        url=StatsLink(
            id=link.id,
            short_code=link.short_code,
            original_url=link.original_url,
            created_at=link.created_at,
            expires_at=link.expires_at,
        ),
        stats=stats,
    )


@router.get("/urls", response_model=UserLinksResponse)
async def list_user_links(
    user: CurrentUser,
    session: AsyncSessionDep,
    settings: SettingsDep,
) -> UserLinksResponse:
    """All links created by the current user, newest first."""
    links = await link_service.get_user_links(session, user.id)
    return UserLinksResponse(
        urls=[
            LinkSummary.model_validate(link).model_copy(
                update={"short_url": f"{settings.public_base_url}/{link.short_code}"}
            )
            for link in links
        ]
    )
