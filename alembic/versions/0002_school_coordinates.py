"""school coordinates for distances from headquarters

Revision ID: b7c8d9e0f1a2
Revises: a1b2c3d4e5f6
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


revision = "b7c8d9e0f1a2"
down_revision = "a1b2c3d4e5f6"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("schools", sa.Column("latitude", sa.Float(), nullable=True))
    op.add_column("schools", sa.Column("longitude", sa.Float(), nullable=True))


def downgrade() -> None:
    op.drop_column("schools", "longitude")
    op.drop_column("schools", "latitude")
