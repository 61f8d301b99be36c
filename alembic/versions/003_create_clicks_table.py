"""Create clicks table for raw click events.

Revision ID: 003
Revises: 002
Create Date: 2026-10-19

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the clicks table."""
    op.create_table(
        "clicks",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("link_id", sa.Integer(), nullable=False),
        sa.Column(
            "short_code",
            sa.String(16),
            nullable=False,
            comment="Short code that was accessed (denormalized for queries)",
        ),
        sa.Column(
            "clicked_at",
            sa.DateTime(),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column(
            "country",
            sa.String(100),
            nullable=False,
            server_default="",
            comment="Country name from GeoIP, empty when unknown",
        ),
        sa.Column("city", sa.String(255), nullable=False, server_default=""),
        sa.Column(
            "device_type",
            sa.String(20),
            nullable=False,
            comment="desktop, mobile, tablet or bot",
        ),
        sa.Column("browser", sa.String(100), nullable=False, server_default=""),
        sa.Column("os", sa.String(100), nullable=False, server_default=""),
        sa.Column("referrer", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_clicks")),
        sa.ForeignKeyConstraint(
            ["link_id"],
            ["links.id"],
            name=op.f("fk_clicks_link_id_links"),
            ondelete="CASCADE",
        ),
    )
    op.create_index(op.f("ix_clicks_link_id"), "clicks", ["link_id"])
    op.create_index(op.f("ix_clicks_clicked_at"), "clicks", ["clicked_at"])
    op.create_index("ix_clicks_link_id_clicked_at", "clicks", ["link_id", "clicked_at"])


def downgrade() -> None:
    """Drop the clicks table."""
    op.drop_index("ix_clicks_link_id_clicked_at", table_name="clicks")
    op.drop_index(op.f("ix_clicks_clicked_at"), table_name="clicks")
    op.drop_index(op.f("ix_clicks_link_id"), table_name="clicks")
    op.drop_table("clicks")
