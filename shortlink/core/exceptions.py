"""Domain exceptions and their HTTP mapping."""

import math

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from shortlink.core.observability import get_request_id

logger = structlog.get_logger()


class ShortlinkError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidURLError(ShortlinkError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid URL"


class InvalidShortCodeError(ShortlinkError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid short code"


class InvalidExpiryError(ShortlinkError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid expiry"


class CollisionError(ShortlinkError):
    """The requested short code is already in use."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Custom short URL already in use"


class CacheKeyExistsError(CollisionError):
    """The short code already has an entry in the link cache."""


class RateLimitedError(ShortlinkError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Rate limit exceeded"

    def __init__(self, retry_after: int, message: str | None = None) -> None:
        self.retry_after = retry_after
        super().__init__(message)


class LinkNotFoundError(ShortlinkError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "URL not found"


class DependencyUnavailableError(ShortlinkError):
    """A backing service (cache, store) failed or timed out."""

    default_message = "Service temporarily unavailable"


class CacheUnavailableError(DependencyUnavailableError):
    default_message = "Failed to reach the link cache"


class CacheWriteError(DependencyUnavailableError):
    default_message = "Failed to store URL in cache"


class AnalyticsError(ShortlinkError):
    """Click recording failed. Logged by the caller, never returned to clients."""


class AuthenticationError(ShortlinkError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid credentials"


class EmailAlreadyRegisteredError(ShortlinkError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "User already exists"


def _error_response(status_code: int, content: dict, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def shortlink_error_handler(request: Request, exc: ShortlinkError) -> JSONResponse:
    """Render a domain error as `{"error": ...}`."""
    if isinstance(exc, DependencyUnavailableError):
        logger.error(
            "Dependency failure",
            error_type=type(exc).__name__,
            error=str(exc.__cause__ or exc),
        )
        return _error_response(
            exc.status_code,
            {"error": exc.message, "request_id": get_request_id()},
        )

    if isinstance(exc, RateLimitedError):
        return _error_response(
            exc.status_code,
            {
                "error": exc.message,
                "retry_after": exc.retry_after,
                "rate_limit_reset": math.ceil(exc.retry_after / 60),
            },
            headers={"Retry-After": str(exc.retry_after)},
        )

    return _error_response(exc.status_code, {"error": exc.message})


async def backend_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Hide raw store/cache failures behind a generic server error."""
    logger.error("Unhandled backend error", error_type=type(exc).__name__, error=str(exc))
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {"error": DependencyUnavailableError.default_message, "request_id": get_request_id()},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error handlers to the application."""
    app.add_exception_handler(ShortlinkError, shortlink_error_handler)
    app.add_exception_handler(SQLAlchemyError, backend_error_handler)
    app.add_exception_handler(RedisError, backend_error_handler)
