"""Create path: validate, pick a code, dual-write to the store and the cache."""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shortlink.core.config import Settings
from shortlink.core.exceptions import (
    CollisionError,
    DependencyUnavailableError,
    InvalidExpiryError,
    InvalidURLError,
    ShortlinkError,
)
from shortlink.core.observability import record_link_operation
from shortlink.core.urls import ensure_scheme, is_valid_url, points_to_domain
from shortlink.models.link import Link
from shortlink.services import link as link_service
from shortlink.services.link_cache import LinkCache
from shortlink.services.shortcode import ShortCodeGenerator

logger = structlog.get_logger()


class LinkShortener:
    """Creates short links.

    There is no transaction spanning the store and the cache. The store
    insert commits first; if the cache write then fails, the row is deleted
    again (compensation) before the error is re-raised. A failed compensation
    is logged and leaves an orphan row that the redirect path still serves
    through its store fallback. A cache entry that `put` wrote but could not
    verify is removed by the cache before it raises.
    """

    def __init__(
        self,
        session: AsyncSession,
        cache: LinkCache,
        settings: Settings,
        insert_attempts: int = 3,
    ) -> None:
        self._session = session
        self._cache = cache
        self._settings = settings
        self._codes = ShortCodeGenerator(session)
        self._insert_attempts = insert_attempts

    def normalize_url(self, raw_url: str) -> str:
        """Validate a client URL and return it scheme-qualified."""
        candidate = ensure_scheme(raw_url.strip())
        if not is_valid_url(candidate):
            raise InvalidURLError()
        if points_to_domain(candidate, self._settings.domain):
            raise InvalidURLError("Cannot shorten links to this service")
        return candidate

    def resolve_expiry(self, expiry_hours: int | None) -> int:
        """Apply the default lifetime and reject values past the configured maximum."""
        expiry_hours = expiry_hours or self._settings.default_expiry_hours
        if not 0 < expiry_hours <= self._settings.max_expiry_hours:
            raise InvalidExpiryError(
                f"Expiry must be between 1 and {self._settings.max_expiry_hours} hours"
            )
        return expiry_hours

    async def shorten(
        self,
        raw_url: str,
        custom_code: str | None = None,
        expiry_hours: int | None = None,
        owner_id: int | None = None,
    ) -> Link:
        """Create a link and make it resolvable through the cache.

        Returns the persisted link including its computed `expires_at`.
        """
        original_url = self.normalize_url(raw_url)
        expiry_hours = self.resolve_expiry(expiry_hours)
        link = await self._insert(original_url, custom_code, expiry_hours, owner_id)
        short_code = link.short_code

        try:
            await self._cache.put(short_code, original_url, ttl=expiry_hours * 3600)
        except ShortlinkError:
            await self._compensate(link)
            raise

        logger.info(
            "Link created",
            link_id=link.id,
            short_code=short_code,
            owner_id=owner_id,
            expiry_hours=expiry_hours,
        )
        record_link_operation("create")
        return link

    async def _insert(
        self,
        original_url: str,
        custom_code: str | None,
        expiry_hours: int,
        owner_id: int | None,
    ) -> Link:
        # A generated code can still be taken between the availability check and the insert
        is_custom = custom_code is not None and bool(custom_code.strip())
        for attempt in range(1, self._insert_attempts + 1):
            short_code = await self._codes.generate(custom_code)
            try:
                return await link_service.insert_link(
                    self._session,
                    short_code=short_code,
                    original_url=original_url,
                    expiry_hours=expiry_hours,
                    owner_id=owner_id,
                )
            except CollisionError:
                if is_custom:
                    raise
                logger.info("Generated short code taken at insert, retrying", attempt=attempt)

        raise DependencyUnavailableError("Unable to generate a unique short code")

    async def _compensate(self, link: Link) -> None:
        try:
            await link_service.delete_link(self._session, link.id)
        except Exception as e:
            logger.error(
                "Failed to roll back link after cache write failure",
                link_id=link.id,
                short_code=link.short_code,
                error=str(e),
            )
            return
        record_link_operation("rollback")
        logger.warning(
            "Link rolled back after cache write failure",
            link_id=link.id,
            short_code=link.short_code,
        )
