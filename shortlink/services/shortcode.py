"""Short code generation and custom-code validation."""

import re
import secrets
import string

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shortlink.core.exceptions import (
    CollisionError,
    DependencyUnavailableError,
    InvalidShortCodeError,
)
from shortlink.services.link import is_short_code_available

logger = structlog.get_logger()

# Characters for random short code generation (base62)
SHORT_CODE_CHARS = string.ascii_lowercase + string.ascii_uppercase + string.digits
SHORT_CODE_LENGTH = 6

CUSTOM_CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]{4,8}$")

# First path segments served by fixed routes; a code equal to one would be unreachable
RESERVED_CODES = frozenset({"api", "docs", "redoc", "health", "metrics", "static", "favicon"})


def generate_short_code(length: int = SHORT_CODE_LENGTH) -> str:
    """Generate a random short code using base62 characters."""
    return "".join(secrets.choice(SHORT_CODE_CHARS) for _ in range(length))


def validate_custom_code(code: str) -> str:
    """Return the custom code if its format is acceptable."""
    if not CUSTOM_CODE_PATTERN.fullmatch(code):
        raise InvalidShortCodeError(
            "Custom short code must be 4-8 characters of letters, digits, '-' or '_'"
        )
    if code.lower() in RESERVED_CODES:
        raise InvalidShortCodeError(f"Short code '{code}' is reserved")
    return code


class ShortCodeGenerator:
    """Produces a code that is free in the durable store at the time of the check.

    The check does not reserve anything; the insert is still guarded by the
    store's unique constraint.
    """

    def __init__(self, session: AsyncSession, max_attempts: int = 10) -> None:
        self._session = session
        self._max_attempts = max_attempts

    async def generate(self, custom: str | None = None) -> str:
        """Validate a custom code, or pick a random unused one."""
        if custom is not None and custom.strip():
            code = validate_custom_code(custom.strip())
            if not await is_short_code_available(self._session, code):
                raise CollisionError()
            return code

        for attempt in range(1, self._max_attempts + 1):
            code = generate_short_code()
            if code.lower() in RESERVED_CODES:
                continue
            if await is_short_code_available(self._session, code):
                return code
            logger.info("Generated short code collided, retrying", attempt=attempt)

        raise DependencyUnavailableError("Unable to generate a unique short code")
