"""Create movies, recommendations and conversations tables.

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── movies ──
    op.create_table(
        "movies",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("year", sa.String(16), nullable=True),
        sa.Column("imdb_id", sa.String(32), nullable=False),
        sa.Column("poster", sa.Text(), nullable=True),
        sa.Column("imdb_rating", sa.String(16), nullable=True),
        sa.Column("imdb_votes", sa.String(32), nullable=True),
        sa.Column("plot", sa.Text(), nullable=True),
        sa.Column("director", sa.Text(), nullable=True),
        sa.Column("actors", sa.Text(), nullable=True),
        sa.Column("genre", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
        ),
        sa.UniqueConstraint("user_id", "imdb_id", name="uq_movies_user_imdb"),
    )
    op.create_index("ix_movies_user_id", "movies", ["user_id"])
    op.create_index("ix_movies_imdb_id", "movies", ["imdb_id"])
    # Case-insensitive exact title lookups per user
    op.execute("CREATE INDEX ix_movies_user_title_lower ON movies (user_id, LOWER(title))")

    # ── recommendations ──
    op.create_table(
        "recommendations",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column(
            "movie_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("movies.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("recommendation", sa.Text(), nullable=False),
        sa.Column("worth_watching", sa.Boolean(), server_default=sa.text("false")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
        ),
    )

    # ── conversations ──
    op.create_table(
        "conversations",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("conversation_id", sa.String(128), nullable=False, unique=True),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("turns", sa.Integer(), server_default=sa.text("0")),
        sa.Column("total_tokens", sa.Integer(), server_default=sa.text("0")),
        sa.Column("messages", postgresql.JSONB(), server_default=sa.text("'[]'::jsonb")),
        sa.Column("discussed_movies", postgresql.JSONB(), server_default=sa.text("'[]'::jsonb")),
        sa.Column("user_preferences", postgresql.JSONB(), server_default=sa.text("'{}'::jsonb")),
        sa.Column("last_activity", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
        ),
    )
    op.create_index("ix_conversations_user_id", "conversations", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_conversations_user_id", table_name="conversations")
    op.drop_table("conversations")
    op.drop_table("recommendations")
    op.execute("DROP INDEX IF EXISTS ix_movies_user_title_lower")
    op.drop_index("ix_movies_imdb_id", table_name="movies")
    op.drop_index("ix_movies_user_id", table_name="movies")
    op.drop_table("movies")
