"""Tests for click recording and stats rollups."""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from shortlink.core.database import utcnow
from shortlink.core.exceptions import AnalyticsError
from shortlink.models.click import Click
from shortlink.schemas.analytics import ClickEvent
from shortlink.services import link as link_service
from shortlink.services.analytics import AnalyticsService

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)


@pytest.fixture
def analytics(geoip):
    return AnalyticsService(geoip)


@pytest.fixture
async def link(session):
    return await link_service.insert_link(session, "abc123", "https://example.com", 24)


def add_click(session, link, days_ago=0, country="", device_type="desktop"):
    session.add(
        Click(
            link_id=link.id,
            short_code=link.short_code,
            clicked_at=utcnow() - timedelta(days=days_ago),
            country=country,
            device_type=device_type,
        )
    )


class TestRecordClick:
    async def test_loopback_click_has_empty_location(self, analytics, session, link):
        click = await analytics.record_click(
            session,
            ClickEvent(short_code="abc123", ip_address="127.0.0.1", user_agent=CHROME_WINDOWS),
        )

        assert click.country == ""
        assert click.city == ""
        assert click.device_type == "desktop"
        assert click.browser.startswith("Chrome")
        assert click.os.startswith("Windows")

    async def test_public_ip_is_geolocated(self, analytics, session, link):
        click = await analytics.record_click(
            session,
            ClickEvent(
                short_code="abc123",
                ip_address="8.8.8.8",
                user_agent=SAFARI_IPHONE,
                referrer="https://news.example.org/",
            ),
        )

        assert click.country == "United States"
        assert click.city == "Mountain View"
        assert click.device_type == "mobile"
        assert click.referrer == "https://news.example.org/"

    async def test_increments_click_count(self, analytics, session, link):
        for _ in range(3):
            await analytics.record_click(session, ClickEvent(short_code="abc123"))

        await session.refresh(link)
        assert link.click_count == 3
        total = await session.scalar(select(func.count()).select_from(Click))
        assert total == 3

    async def test_unknown_code_raises(self, analytics, session):
        with pytest.raises(AnalyticsError):
            await analytics.record_click(session, ClickEvent(short_code="nope42"))


class TestRecordClickSafely:
    async def test_stores_click_in_own_session(self, analytics, session_factory, session, link):
        await analytics.record_click_safely(session_factory, ClickEvent(short_code="abc123"))

        total = await session.scalar(select(func.count()).select_from(Click))
        assert total == 1

    async def test_swallows_failures(self, analytics, session_factory):
        await analytics.record_click_safely(session_factory, ClickEvent(short_code="nope42"))


class TestGetStats:
    async def test_empty_link(self, analytics, session, link):
        stats = await analytics.get_stats(session, link)

        assert stats.total_clicks == 0
        assert stats.clicks_by_date == []
        assert stats.top_countries == []
        assert stats.device_stats == []

    async def test_rollups(self, analytics, session, link):
        add_click(session, link, days_ago=0, country="Norway", device_type="mobile")
        add_click(session, link, days_ago=0, country="Norway", device_type="desktop")
        add_click(session, link, days_ago=1, country="Sweden", device_type="desktop")
        add_click(session, link, days_ago=1, country="", device_type="bot")
        add_click(session, link, days_ago=45, country="Denmark", device_type="desktop")
        await session.commit()

        stats = await analytics.get_stats(session, link)

        assert stats.total_clicks == 5

        today = utcnow().date()
        assert [(d.date, d.count) for d in stats.clicks_by_date] == [
            (str(today), 2),
            (str(today - timedelta(days=1)), 2),
        ]
        assert [(c.country, c.count) for c in stats.top_countries] == [
            ("Norway", 2),
            ("Denmark", 1),
            ("Sweden", 1),
        ]
        assert [(d.device_type, d.count) for d in stats.device_stats] == [
            ("bot", 1),
            ("desktop", 3),
            ("mobile", 1),
        ]

    async def test_top_countries_limited(self, analytics, session, link):
        for i in range(12):
            add_click(session, link, country=f"Country {i:02d}")
        await session.commit()

        stats = await analytics.get_stats(session, link, top_n=10)

        assert len(stats.top_countries) == 10

    async def test_only_counts_own_clicks(self, analytics, session, link):
        other = await link_service.insert_link(session, "zzz999", "https://other.example.com", 24)
        add_click(session, other)
        add_click(session, link)
        await session.commit()

        assert (await analytics.get_stats(session, link)).total_clicks == 1

    async def test_repeated_queries_are_identical(self, analytics, session, link):
        add_click(session, link, country="Norway")
        add_click(session, link, days_ago=2, country="Sweden", device_type="mobile")
        await session.commit()

        first = await analytics.get_stats(session, link)
        second = await analytics.get_stats(session, link)

        assert first == second
