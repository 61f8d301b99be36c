"""Database configuration with SQLAlchemy 2.0 async support."""

from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import Depends, Request
from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from shortlink.core.config import Settings

# Naming convention for constraints (helps with migrations)
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    metadata = MetaData(naming_convention=convention)


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the shared async engine with connection pooling and timeouts."""
    kwargs: dict[str, Any] = {
        "echo": settings.debug,  # Log SQL statements in debug mode
        "pool_pre_ping": True,  # Verify connections before use
    }
    if settings.database_url.startswith("postgresql"):
        kwargs.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_timeout,  # Seconds to wait for a connection
            pool_recycle=1800,  # Recycle connections after 30 minutes
            connect_args={
                "timeout": settings.database_timeout,
                "command_timeout": settings.database_timeout,
            },
        )
    return create_async_engine(settings.database_url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory for creating database sessions."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    """The session factory built during application startup."""
    return request.app.state.session_factory


async def get_async_session(
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides an async database session.

    Usage:
        @router.get("/items")
        async def get_items(session: AsyncSession = Depends(get_async_session)):
            ...
    """
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# Type aliases for dependency injection
AsyncSessionDep = Annotated[AsyncSession, Depends(get_async_session)]
SessionFactoryDep = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]


async def init_db(engine: AsyncEngine) -> None:
    """Initialize database tables.

    Note: In production, use Alembic migrations instead.
    This is useful for testing or initial development.
    """
    # Import models so they register on the metadata
    import shortlink.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine) -> None:
    """Close database connections."""
    await engine.dispose()
