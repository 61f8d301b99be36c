"""Redirect endpoint for short links."""

import structlog
from fastapi import APIRouter, BackgroundTasks, Request, status
from fastapi.responses import RedirectResponse

from shortlink.core.database import AsyncSessionDep, SessionFactoryDep
from shortlink.core.deps import AnalyticsDep, LinkCacheDep
from shortlink.core.rate_limit import RATE_LIMIT_REDIRECT, get_real_client_ip, limiter
from shortlink.schemas.analytics import ClickEvent
from shortlink.services.resolver import RedirectResolver

logger = structlog.get_logger()

router = APIRouter(tags=["redirect"])


@router.get("/{short_code}")
@limiter.limit(RATE_LIMIT_REDIRECT)
async def redirect_to_original(
    request: Request,
    short_code: str,
    background_tasks: BackgroundTasks,
    session: AsyncSessionDep,
    session_factory: SessionFactoryDep,
    cache: LinkCacheDep,
    analytics: AnalyticsDep,
) -> RedirectResponse:
    """Redirect a short code to its original URL.

    Flow:
    1. Check the link cache
    2. On a miss, read the database and repopulate the cache
    3. Queue click recording after the response is sent
    4. Answer 302 with the target in `Location`
    """
    resolved = await RedirectResolver(session, cache).resolve(short_code)

    event = ClickEvent(
        short_code=short_code,
        ip_address=get_real_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
        referrer=request.headers.get("Referer"),
    )
    background_tasks.add_task(analytics.record_click_safely, session_factory, event)

    logger.info(
        "Redirect",
        short_code=short_code,
        source=resolved.source.value,
    )
    return RedirectResponse(url=resolved.target_url, status_code=status.HTTP_302_FOUND)
