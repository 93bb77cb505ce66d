"""Initial schema — users, likes and matches.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── 1. users ────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("login", sa.String(64), nullable=False),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("age", sa.Integer, nullable=False),
        sa.Column("gender", sa.String, nullable=False),
        sa.Column("city", sa.String, nullable=True),
        sa.Column("about", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_users_login", "users", ["login"], unique=True)

    # ── 2. likes (directed, one per ordered pair, never self) ───────
    op.create_table(
        "likes",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            comment="Liker (owner of the edge)",
        ),
        sa.Column(
            "liked_user",
            sa.Integer,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("user_id", "liked_user", name="uq_like_pair"),
        sa.CheckConstraint("user_id <> liked_user", name="ck_like_not_self"),
    )
    op.create_index("ix_likes_user_id", "likes", ["user_id"])
    op.create_index("ix_likes_liked_user", "likes", ["liked_user"])

    # ── 3. matches (undirected, stored as user_1 < user_2) ──────────
    op.create_table(
        "matches",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "user_1",
            sa.Integer,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_2",
            sa.Integer,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("user_1", "user_2", name="uq_match_pair"),
        sa.CheckConstraint("user_1 < user_2", name="ck_match_canonical_order"),
    )
    op.create_index("ix_matches_user_1", "matches", ["user_1"])
    op.create_index("ix_matches_user_2", "matches", ["user_2"])


def downgrade() -> None:
    # Drop in reverse order (children / dependents first).
    op.drop_index("ix_matches_user_2", table_name="matches")
    op.drop_index("ix_matches_user_1", table_name="matches")
    op.drop_table("matches")

    op.drop_index("ix_likes_liked_user", table_name="likes")
    op.drop_index("ix_likes_user_id", table_name="likes")
    op.drop_table("likes")

    op.drop_index("ix_users_login", table_name="users")
    op.drop_table("users")
