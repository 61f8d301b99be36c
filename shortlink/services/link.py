"""Link service for durable-store operations."""

from datetime import datetime, timedelta

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shortlink.core.database import utcnow
from shortlink.core.exceptions import CollisionError
from shortlink.models.link import Link


async def is_short_code_available(session: AsyncSession, short_code: str) -> bool:
    """Check if a short code is available (not already used)."""
    result = await session.execute(
        select(Link.id).where(Link.short_code == short_code)
    )
    return result.scalar_one_or_none() is None


async def get_link_by_short_code(
    session: AsyncSession,
    short_code: str,
) -> Link | None:
    """Get a link by its short code, expired or not."""
    result = await session.execute(
        select(Link).where(Link.short_code == short_code)
    )
    return result.scalar_one_or_none()


async def get_active_link_by_short_code(
    session: AsyncSession,
    short_code: str,
    now: datetime | None = None,
) -> Link | None:
    """Get a non-expired link by its short code."""
    result = await session.execute(
        select(Link).where(
            Link.short_code == short_code,
            Link.expires_at > (now or utcnow()),
        )
    )
    return result.scalar_one_or_none()


async def get_user_links(session: AsyncSession, user_id: int) -> list[Link]:
    """All links owned by a user, newest first."""
    result = await session.execute(
        select(Link)
        .where(Link.owner_id == user_id)
        .order_by(Link.created_at.desc(), Link.id.desc())
    )
    return list(result.scalars().all())


async def get_expiring_links(
    session: AsyncSession,
    within: timedelta = timedelta(hours=24),
    now: datetime | None = None,
) -> list[Link]:
    """Links with an owner that expire within the given window."""
    now = now or utcnow()
    result = await session.execute(
        select(Link)
        .options(selectinload(Link.owner))
        .where(
            Link.owner_id.is_not(None),
            Link.expires_at > now,
            Link.expires_at <= now + within,
        )
        .order_by(Link.expires_at)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def insert_link(
    session: AsyncSession,
    short_code: str,
    original_url: str,
    expiry_hours: int,
    owner_id: int | None = None,
) -> Link:
    """Insert and commit a new link.

    The unique index on `short_code` decides concurrent races: the loser's
    commit fails and is reported as a collision.
    """
    created_at = utcnow()
    link = Link(
        owner_id=owner_id,
        short_code=short_code,
        original_url=original_url,
        expiry_hours=expiry_hours,
        created_at=created_at,
        expires_at=created_at + timedelta(hours=expiry_hours),
    )
    session.add(link)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise CollisionError(f"Short code '{short_code}' is already in use") from e
    await session.refresh(link)
    return link


async def delete_link(session: AsyncSession, link_id: int) -> None:
    """Hard-delete a link row and commit."""
    await session.execute(delete(Link).where(Link.id == link_id))
    await session.commit()


async def increment_click_count(session: AsyncSession, link_id: int) -> None:
    """Atomically increment the click count for a link."""
    await session.execute(
        update(Link)
        .where(Link.id == link_id)
        .values(click_count=Link.click_count + 1)
    )
