"""Link SQLAlchemy model."""

from datetime import datetime
from typing import Optional

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shortlink.core.database import Base, utcnow


class Link(Base):
    """Short code mapped to its target URL.

    Rows are immutable after creation apart from the denormalized click
    counter; expiry is passive (`expires_at` is compared at read time).
    """

    __tablename__ = "links"

    id: Mapped[int] = mapped_column(primary_key=True)
    owner_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    short_code: Mapped[str] = mapped_column(
        String(16),
        unique=True,
        nullable=False,
        index=True,
        comment="Short code for the URL; the unique index is the authoritative uniqueness guard",
    )
    original_url: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Scheme-qualified target URL",
    )
    expiry_hours: Mapped[int] = mapped_column(nullable=False)
    click_count: Mapped[int] = mapped_column(
        default=0,
        nullable=False,
        comment="Total click count (denormalized for quick access)",
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(nullable=False, index=True)

    owner: Mapped[Optional["User"]] = relationship(back_populates="links")

    def __repr__(self) -> str:
        return f"<Link {self.short_code} -> {self.original_url[:50]}>"

    def seconds_to_expiry(self, now: datetime | None = None) -> int:
        """Whole seconds until expiry, zero when already expired."""
        remaining = (self.expires_at - (now or utcnow())).total_seconds()
        return max(0, int(remaining))


from shortlink.models.user import User  # noqa: E402
