"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18

Users and game analyses.
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID, JSONB


revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("user_id", UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("email", sa.String, nullable=False),
        sa.Column("full_name", sa.String, nullable=True),
        sa.Column("hashed_password", sa.String, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # --- analyses ---
    op.create_table(
        "analyses",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("analysis_id", sa.String, nullable=False),
        sa.Column("owner_key", sa.String, nullable=False),
        sa.Column("batch_id", sa.String, nullable=True),
        sa.Column("status", sa.String, nullable=False, server_default="pending"),
        sa.Column("pgn", sa.Text, nullable=False),
        sa.Column("source_url", sa.String, nullable=True),
        sa.Column("player_name", sa.String, nullable=False),
        sa.Column("player_color", sa.String, nullable=False),
        sa.Column("game_metadata", JSONB, nullable=False),
        sa.Column("result", JSONB, nullable=True),
        sa.Column("error", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'failed')",
            name="ck_analysis_status",
        ),
        sa.CheckConstraint(
            "player_color IN ('white', 'black')",
            name="ck_analysis_player_color",
        ),
    )
    op.create_index("ix_analyses_analysis_id", "analyses", ["analysis_id"], unique=True)
    op.create_index("ix_analyses_owner_key", "analyses", ["owner_key"])
    op.create_index("ix_analyses_batch_id", "analyses", ["batch_id"])
    op.create_index("ix_analyses_status", "analyses", ["status"])
    # Per-user listing is newest first
    op.create_index(
        "ix_analyses_owner_key_created_at", "analyses", ["owner_key", "created_at"]
    )


def downgrade() -> None:
    op.drop_index("ix_analyses_owner_key_created_at", table_name="analyses")
    op.drop_index("ix_analyses_status", table_name="analyses")
    op.drop_index("ix_analyses_batch_id", table_name="analyses")
    op.drop_index("ix_analyses_owner_key", table_name="analyses")
    op.drop_index("ix_analyses_analysis_id", table_name="analyses")
    op.drop_table("analyses")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
