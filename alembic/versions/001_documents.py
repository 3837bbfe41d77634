"""Document store table.

Every collection (users, usernames, beers, movies, posts, interactions,
notifications, weeklyStats) lives in one table keyed by (collection, id)
with the document body in a JSON column.

Revision ID: 001_documents
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "001_documents"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the documents table and its lookup indexes."""
    op.create_table(
        "documents",
        sa.Column("collection", sa.String(64), primary_key=True),
        sa.Column("id", sa.String(160), primary_key=True),
        sa.Column("data", sa.JSON().with_variant(postgresql.JSONB(), "postgresql"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_documents_collection", "documents", ["collection"])

    # Expression indexes for the hot query paths (Postgres only)
    if op.get_bind().dialect.name == "postgresql":
        op.execute(
            "CREATE INDEX ix_documents_posts_feed ON documents "
            "((data->>'userId'), (data->>'createdAt') DESC, id DESC) WHERE collection = 'posts'"
        )
        op.execute(
            "CREATE INDEX ix_documents_user_ref ON documents (collection, (data->>'userId'))"
        )
        op.execute(
            "CREATE INDEX ix_documents_notifications_recipient ON documents "
            "((data->>'recipientId'), (data->>'createdAt') DESC) WHERE collection = 'notifications'"
        )
        op.execute(
            "CREATE INDEX ix_documents_interactions_post ON documents "
            "((data->>'postId')) WHERE collection = 'interactions'"
        )
        op.execute(
            "CREATE INDEX ix_documents_users_username ON documents "
            "((data->>'username')) WHERE collection = 'users'"
        )


def downgrade() -> None:
    op.drop_table("documents")
