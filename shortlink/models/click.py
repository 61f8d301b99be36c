"""Click SQLAlchemy model for storing raw click events."""

from datetime import datetime

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from shortlink.core.database import Base, utcnow


class Click(Base):
    """Click model for storing raw click/redirect events.

    Each row represents a single redirect of a short link. Rows are
    append-only; aggregation happens at query time.
    """

    __tablename__ = "clicks"

    id: Mapped[int] = mapped_column(primary_key=True)
    link_id: Mapped[int] = mapped_column(
        ForeignKey("links.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    short_code: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="Short code that was accessed (denormalized for queries)",
    )
    clicked_at: Mapped[datetime] = mapped_column(
        default=utcnow,
        nullable=False,
        index=True,
    )
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    country: Mapped[str] = mapped_column(
        String(100),
        default="",
        nullable=False,
        comment="Country name from GeoIP, empty when unknown",
    )
    city: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    device_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="desktop, mobile, tablet or bot",
    )
    browser: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    os: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    referrer: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_clicks_link_id_clicked_at", "link_id", "clicked_at"),
    )

    def __repr__(self) -> str:
        return f"<Click {self.id} link={self.link_id} at={self.clicked_at}>"
