"""Click recording and query-time stats rollups."""

from datetime import timedelta

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortlink.core.database import utcnow
from shortlink.core.exceptions import AnalyticsError
from shortlink.core.observability import record_click
from shortlink.models.click import Click
from shortlink.models.link import Link
from shortlink.schemas.analytics import (
    ClickEvent,
    CountryCount,
    DateCount,
    DeviceCount,
    LinkStats,
)
from shortlink.services import link as link_service
from shortlink.services.geoip import GeoIPService
from shortlink.services.user_agent import parse_user_agent

logger = structlog.get_logger()

STATS_WINDOW_DAYS = 30
TOP_COUNTRIES = 10


class AnalyticsService:
    """Records redirects as click rows and aggregates them on demand.

    Usage:
        analytics = AnalyticsService(geoip)
        await analytics.record_click(session, event)
        stats = await analytics.get_stats(session, link)
    """

    def __init__(self, geoip: GeoIPService) -> None:
        self._geoip = geoip

    async def record_click(self, session: AsyncSession, event: ClickEvent) -> Click:
        """Append a click for `event.short_code` and bump the link's counter.

        Raises:
            AnalyticsError: the code no longer maps to a stored link.
        """
        link = await link_service.get_link_by_short_code(session, event.short_code)
        if link is None:
            raise AnalyticsError(f"No link for short code '{event.short_code}'")

        client = parse_user_agent(event.user_agent)
        location = await self._geoip.lookup(event.ip_address)

        click = Click(
            link_id=link.id,
            short_code=event.short_code,
            clicked_at=event.clicked_at,
            ip_address=event.ip_address,
            user_agent=event.user_agent,
            country=location.country,
            city=location.city,
            device_type=client.device_type,
            browser=client.browser_label,
            os=client.os,
            referrer=event.referrer,
        )
        session.add(click)
        await link_service.increment_click_count(session, link.id)
        await session.commit()

        logger.debug(
            "Click recorded",
            short_code=event.short_code,
            link_id=link.id,
            country=location.country,
            device_type=client.device_type,
        )
        return click

    async def record_click_safely(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        event: ClickEvent,
    ) -> None:
        """Background-task entry point: own session, failures logged and dropped."""
        try:
            async with session_factory() as session:
                await self.record_click(session, event)
        except Exception as e:
            record_click("failed")
            logger.warning(
                "Failed to record click",
                short_code=event.short_code,
                error=str(e),
                error_type=type(e).__name__,
            )
            return
        record_click("stored")

    async def get_stats(
        self,
        session: AsyncSession,
        link: Link,
        days: int = STATS_WINDOW_DAYS,
        top_n: int = TOP_COUNTRIES,
    ) -> LinkStats:
        """Aggregate a link's clicks as of now."""
        total = await session.scalar(
            select(func.count()).select_from(Click).where(Click.link_id == link.id)
        )

        day = func.date(Click.clicked_at).label("day")
        since = utcnow() - timedelta(days=days)
        by_date = await session.execute(
            select(day, func.count().label("clicks"))
            .where(Click.link_id == link.id, Click.clicked_at >= since)
            .group_by(day)
            .order_by(day.desc())
        )

        count = func.count().label("clicks")
        countries = await session.execute(
            select(Click.country, count)
            .where(Click.link_id == link.id, Click.country != "")
            .group_by(Click.country)
            .order_by(count.desc(), Click.country)
            .limit(top_n)
        )

        devices = await session.execute(
            select(Click.device_type, func.count().label("clicks"))
            .where(Click.link_id == link.id)
            .group_by(Click.device_type)
            .order_by(Click.device_type)
        )

        return LinkStats(
            total_clicks=total or 0,
            clicks_by_date=[DateCount(date=str(row.day), count=row.clicks) for row in by_date],
            top_countries=[
                CountryCount(country=row.country, count=row.clicks) for row in countries
            ],
            device_stats=[
                DeviceCount(device_type=row.device_type, count=row.clicks) for row in devices
            ],
        )
