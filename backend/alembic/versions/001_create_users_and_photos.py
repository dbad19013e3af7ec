"""Create users and photos tables

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Initial schema: accounts (`users`) and the photo catalogue (`photos`).
How:   PostgreSQL-specific types: UUID keys via gen_random_uuid(),
       TIMESTAMP WITH TIME ZONE, JSONB tags with a GIN index.

Rollback: downgrade() drops both tables (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        # Stored lower-cased by the application
        sa.Column("email", sa.String(254), nullable=False),
        # bcrypt hash only; the raw password is never stored
        sa.Column("password_hash", sa.String(72), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default=sa.text("'user'")),
        sa.Column("profile_picture", sa.String(2048), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
        sa.UniqueConstraint("email"),
        sa.CheckConstraint("role IN ('user', 'admin')", name="ck_users_role"),
    )

    op.create_table(
        "photos",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "tags",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("is_featured", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_hidden", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("image_url", sa.String(2048), nullable=False),
        sa.Column("thumbnail_url", sa.String(2048), nullable=False),
        # storage_id + provider locate the asset for deletion
        sa.Column("storage_id", sa.String(512), nullable=False),
        sa.Column("provider", sa.String(32), nullable=False),
        sa.Column("width", sa.Integer(), nullable=True),
        sa.Column("height", sa.Integer(), nullable=True),
        sa.Column("original_width", sa.Integer(), nullable=True),
        sa.Column("original_height", sa.Integer(), nullable=True),
        sa.Column("original_size_kb", sa.Float(), nullable=True),
        sa.Column("size_kb", sa.Float(), nullable=True),
        sa.Column("format", sa.String(32), nullable=True),
        sa.Column("location", sa.String(200), nullable=True),
        sa.Column("photographer", sa.String(100), nullable=True),
        sa.Column("date_taken", sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("title"),
    )

    op.create_index("idx_photos_created_at", "photos", [sa.text("created_at DESC")])
    op.create_index("idx_photos_featured", "photos", ["is_featured"])
    op.create_index("idx_photos_tags", "photos", ["tags"], postgresql_using="gin")


def downgrade() -> None:
    """Drop both tables. All accounts and catalogue data are lost."""
    op.drop_index("idx_photos_tags", table_name="photos")
    op.drop_index("idx_photos_featured", table_name="photos")
    op.drop_index("idx_photos_created_at", table_name="photos")
    op.drop_table("photos")
    op.drop_table("users")
