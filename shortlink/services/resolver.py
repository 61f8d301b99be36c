"""Redirect path: cache first, durable store as fallback."""

from dataclasses import dataclass
from enum import Enum

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shortlink.core.exceptions import CacheUnavailableError, LinkNotFoundError
from shortlink.core.observability import record_redirect
from shortlink.core.urls import ensure_scheme
from shortlink.services import link as link_service
from shortlink.services.link_cache import LinkCache

logger = structlog.get_logger()


class ResolveSource(str, Enum):
    CACHE = "cache"
    STORE = "store"


@dataclass(frozen=True)
class ResolvedLink:
    short_code: str
    target_url: str
    source: ResolveSource


class RedirectResolver:
    """Resolves a short code to its redirect target.

    LOOKUP_CACHE -> hit -> done
    LOOKUP_CACHE -> miss -> LOOKUP_STORE -> found -> write back -> done
                                         -> missing or expired -> LinkNotFoundError

    A cache hit never touches the store. A cache that cannot be reached is
    treated as a miss so redirects keep working from the store.
    """

    def __init__(self, session: AsyncSession, cache: LinkCache) -> None:
        self._session = session
        self._cache = cache

    async def resolve(self, short_code: str) -> ResolvedLink:
        try:
            cached = await self._cache.get(short_code)
        except CacheUnavailableError as e:
            logger.warning("Cache lookup failed, using store", short_code=short_code, error=str(e.__cause__))
            cached = None

        if cached:
            record_redirect(ResolveSource.CACHE.value)
            return ResolvedLink(short_code, ensure_scheme(cached), ResolveSource.CACHE)

        link = await link_service.get_active_link_by_short_code(self._session, short_code)
        if link is None:
            logger.info("Redirect failed - link not found", short_code=short_code)
            raise LinkNotFoundError()

        target = ensure_scheme(link.original_url)
        if await self._cache.backfill(short_code, target, link.seconds_to_expiry()):
            logger.debug("Cache repopulated from store", short_code=short_code)

        record_redirect(ResolveSource.STORE.value)
        return ResolvedLink(short_code, target, ResolveSource.STORE)
