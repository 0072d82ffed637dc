"""Initial schema: comment_snapshots, read_posts, cached_listings.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # -- comment_snapshots --
    op.create_table(
        "comment_snapshots",
        sa.Column("permalink", sa.Text, primary_key=True),
        sa.Column("comment_ids", sa.Text, nullable=False),
        sa.Column("last_fetch_time", sa.BigInteger, nullable=False),
        sa.Column("updated_at", sa.Text, nullable=True),
    )

    # -- read_posts --
    op.create_table(
        "read_posts",
        sa.Column("permalink", sa.Text, primary_key=True),
        sa.Column("read_at", sa.BigInteger, nullable=False),
    )
    op.create_index("idx_read_posts_read_at", "read_posts", ["read_at"])

    # -- cached_listings --
    op.create_table(
        "cached_listings",
        sa.Column("subreddit", sa.Text, primary_key=True),
        sa.Column("sort", sa.Text, nullable=False),
        sa.Column("posts_json", sa.Text, nullable=False),
        sa.Column("fetched_at", sa.BigInteger, nullable=False),
    )


def downgrade() -> None:
    op.drop_table("cached_listings")
    op.drop_index("idx_read_posts_read_at", table_name="read_posts")
    op.drop_table("read_posts")
    op.drop_table("comment_snapshots")
