"""Create users and dogs tables

Revision ID: 001
Revises: None
Create Date: 2025-03-01 00:00:00.000000+00:00

What:  Initial schema: `users` and their reported `dogs`.
How:   PostgreSQL UUID keys generated server-side, timezone-aware timestamps,
       ON DELETE CASCADE from users to dogs.

Rollback: downgrade() drops both tables (all data lost).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("email", sa.String(255), nullable=False, comment="Stored lowercase"),
        sa.Column("password", sa.String(255), nullable=False, comment="passlib hash"),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("avatar", sa.String(500), nullable=True),
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
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="users_email_key"),
    )

    op.create_table(
        "dogs",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("image_url", sa.String(500), nullable=True),
        # Decimal degrees; range deliberately not constrained
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("breed", sa.String(100), nullable=True),
        sa.Column("color", sa.String(100), nullable=True),
        sa.Column("size", sa.String(20), nullable=True),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'found'"),
            comment="found | lost",
        ),
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
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="dogs_user_id_fkey",
            ondelete="CASCADE",
            onupdate="CASCADE",
        ),
    )

    op.create_index("dogs_user_id_idx", "dogs", ["user_id"])
    op.create_index("dogs_status_idx", "dogs", ["status"])
    op.create_index("dogs_latitude_longitude_idx", "dogs", ["latitude", "longitude"])
    op.create_index("dogs_created_at_idx", "dogs", [sa.text("created_at DESC")])


def downgrade() -> None:
    op.drop_index("dogs_created_at_idx", table_name="dogs")
    op.drop_index("dogs_latitude_longitude_idx", table_name="dogs")
    op.drop_index("dogs_status_idx", table_name="dogs")
    op.drop_index("dogs_user_id_idx", table_name="dogs")
    op.drop_table("dogs")
    op.drop_table("users")
