"""User service for database operations."""

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shortlink.core.exceptions import AuthenticationError, EmailAlreadyRegisteredError
from shortlink.core.security import hash_password, verify_password
from shortlink.models.user import User
from shortlink.schemas.user import LoginRequest, RegisterRequest

logger = structlog.get_logger()


async def get_user_by_id(session: AsyncSession, user_id: int) -> User | None:
    """Get a user by their ID."""
    result = await session.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    """Get a user by their email address."""
    result = await session.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def register_user(session: AsyncSession, data: RegisterRequest) -> User:
    """Create a new account.

    Raises:
        EmailAlreadyRegisteredError: the email is taken (also on a concurrent race).
    """
    email = data.email.lower()
    if await get_user_by_email(session, email) is not None:
        raise EmailAlreadyRegisteredError()

    user = User(
        email=email,
        password_hash=hash_password(data.password),
        name=data.name,
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise EmailAlreadyRegisteredError() from e
    await session.refresh(user)

    logger.info("User registered", user_id=user.id)
    return user


async def authenticate_user(session: AsyncSession, data: LoginRequest) -> User:
    """Return the user for valid credentials.

    Raises:
        AuthenticationError: unknown email or wrong password.
    """
    user = await get_user_by_email(session, data.email)
    if user is None or not verify_password(data.password, user.password_hash):
        logger.info("Login failed", email_domain=data.email.rsplit("@", 1)[-1])
        raise AuthenticationError()
    return user
