"""Link Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ShortenRequest(BaseModel):
    """Body of `POST /shorten`.

    Only types are checked here; URL syntax and code format are validated by
    the shortener so that they surface as 400 errors.
    """

    url: str = Field(max_length=4096, description="The URL to shorten (scheme optional)")
    custom_short: str | None = Field(
        default=None,
        max_length=64,
        description="Optional custom short code",
    )
    expiry: int | None = Field(
        default=None,
        ge=0,
        description="Lifetime in hours; 0 or missing means the default (24h), at most ten years",
    )


class ShortenResponse(BaseModel):
    """Response of `POST /shorten`."""

    id: int
    short_code: str
    original_url: str
    short_url: str
    expiry: int = Field(description="Lifetime in hours")
    created_at: datetime
    expires_at: datetime
    rate_limit: int = Field(description="Create requests left in the current window")
    rate_reset: int = Field(description="Minutes until the rate-limit window resets")


class DebugResponse(BaseModel):
    """What the link cache holds for a code."""

    id: str
    original_url: str


class LinkSummary(BaseModel):
    """A link as listed for its owner."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    short_code: str
    original_url: str
    short_url: str = ""
    expiry_hours: int
    click_count: int
    created_at: datetime
    expires_at: datetime


class UserLinksResponse(BaseModel):
    urls: list[LinkSummary]
