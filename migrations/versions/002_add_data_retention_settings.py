"""Add data retention settings.

Creates the singleton data_retention_settings table (row id = 1).
The row itself is seeded on first read from DATA_RETENTION_* environment
variables, so no data is inserted here.

Archive mirror tables (*_archive) are not part of this migration: the
retention job creates them on demand, or at startup when
RETENTION_PRECREATE_ARCHIVE=true.

Revision ID: 002_add_data_retention_settings
Revises: 001_dataset_schema
Create Date: 2026-10-08
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '002_add_data_retention_settings'
down_revision: Union[str, Sequence[str], None] = '001_dataset_schema'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create data_retention_settings."""
    print("  Creating data_retention_settings table...")

    op.create_table(
        'data_retention_settings',
        sa.Column('id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('retention_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('mode', sa.String(length=16), nullable=False, server_default='delete'),
        sa.Column('delete_files', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('interval_hours', sa.Integer(), nullable=False, server_default='24'),
        sa.Column('updated_at', sa.DateTime(), nullable=True, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )

    print("  Created data_retention_settings table")


def downgrade() -> None:
    """Drop data_retention_settings."""
    print("  Dropping data_retention_settings table...")
    op.drop_table('data_retention_settings')
