"""Create the ``users`` table and its indexes.

Revision ID: 3f1c9a2b7d40
Revises:
Create Date: 2026-10-19 10:12:41.518230
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "3f1c9a2b7d40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TABLE_NAME = "users"
IDX_ID = op.f("ix_users_id")
IDX_EMAIL = op.f("ix_users_email")


def upgrade() -> None:
    """Create the ``users`` table with a unique index on ``email``."""
    op.create_table(
        TABLE_NAME,
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("password", sa.String(length=255), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(IDX_ID, TABLE_NAME, ["id"], unique=False)
    op.create_index(IDX_EMAIL, TABLE_NAME, ["email"], unique=True)


def downgrade() -> None:
    """Drop the indexes, then the ``users`` table."""
    op.drop_index(IDX_EMAIL, table_name=TABLE_NAME)
    op.drop_index(IDX_ID, table_name=TABLE_NAME)
    op.drop_table(TABLE_NAME)
