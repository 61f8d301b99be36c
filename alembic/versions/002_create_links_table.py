"""Create links table.

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the links table."""
    op.create_table(
        "links",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=True),
        sa.Column(
            "short_code",
            sa.String(16),
            nullable=False,
            comment="Short code for the URL; the unique index is the authoritative uniqueness guard",
        ),
        sa.Column(
            "original_url",
            sa.Text(),
            nullable=False,
            comment="Scheme-qualified target URL",
        ),
        sa.Column("expiry_hours", sa.Integer(), nullable=False),
        sa.Column(
            "click_count",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
            comment="Total click count (denormalized for quick access)",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_links")),
        sa.ForeignKeyConstraint(
            ["owner_id"],
            ["users.id"],
            name=op.f("fk_links_owner_id_users"),
            ondelete="SET NULL",
        ),
    )
    op.create_index(op.f("ix_links_short_code"), "links", ["short_code"], unique=True)
    op.create_index(op.f("ix_links_owner_id"), "links", ["owner_id"])
    op.create_index(op.f("ix_links_expires_at"), "links", ["expires_at"])


def downgrade() -> None:
    """Drop the links table."""
    op.drop_index(op.f("ix_links_expires_at"), table_name="links")
    op.drop_index(op.f("ix_links_owner_id"), table_name="links")
    op.drop_index(op.f("ix_links_short_code"), table_name="links")
    op.drop_table("links")
