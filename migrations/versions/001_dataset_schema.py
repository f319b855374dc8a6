"""Dataset schema

Revision ID: 001_dataset_schema
Revises:
Create Date: 2026-10-01

Projects, uploaded datasets ("files") and their dependent records:
parsed rows, column definitions, quality scores and profiles.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_dataset_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'projects',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        'files',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('project_id', sa.Integer, sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('file_type', sa.String(16), nullable=False),
        sa.Column('storage_path', sa.String(512), nullable=True),
        sa.Column('uploaded_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_files_project_uploaded', 'files', ['project_id', 'uploaded_at'])
    op.create_index('ix_files_uploaded_at', 'files', ['uploaded_at'])

    op.create_table(
        'file_rows',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('file_id', sa.Integer, sa.ForeignKey('files.id', ondelete='CASCADE'), nullable=False),
        sa.Column('row_index', sa.Integer, nullable=False),
        sa.Column('data_json', sa.LargeBinary, nullable=False),
    )
    op.create_index('ix_file_rows_file_id', 'file_rows', ['file_id'])
    op.create_index('ix_file_rows_file_row_index', 'file_rows', ['file_id', 'row_index'])

    op.create_table(
        'file_columns',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('file_id', sa.Integer, sa.ForeignKey('files.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('position', sa.Integer, nullable=False),
    )
    op.create_index('ix_file_columns_file_id', 'file_columns', ['file_id'])

    op.create_table(
        'data_quality_scores',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('file_id', sa.Integer, sa.ForeignKey('files.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('score', sa.Numeric(5, 2), nullable=False),
        sa.Column('trust_level', sa.String(16), nullable=False),
        sa.Column('missing_rate', sa.Numeric(6, 4), nullable=False, server_default='0'),
        sa.Column('duplicate_rate', sa.Numeric(6, 4), nullable=False, server_default='0'),
        sa.Column('invalid_rate', sa.Numeric(6, 4), nullable=False, server_default='0'),
        sa.Column('schema_inconsistency_rate', sa.Numeric(6, 4), nullable=False, server_default='0'),
        sa.Column('total_rows', sa.Integer, nullable=False, server_default='0'),
        sa.Column('total_columns', sa.Integer, nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    )

    op.create_table(
        'file_profiles',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('file_id', sa.Integer, sa.ForeignKey('files.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('profile_json', sa.Text, nullable=False),
        sa.Column('row_count', sa.Integer, nullable=False, server_default='0'),
        sa.Column('column_count', sa.Integer, nullable=False, server_default='0'),
        sa.Column('generated_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    )


def downgrade() -> None:
    op.drop_table('file_profiles')
    op.drop_table('data_quality_scores')
    op.drop_index('ix_file_columns_file_id', table_name='file_columns')
    op.drop_table('file_columns')
    op.drop_index('ix_file_rows_file_row_index', table_name='file_rows')
    op.drop_index('ix_file_rows_file_id', table_name='file_rows')
    op.drop_table('file_rows')
    op.drop_index('ix_files_uploaded_at', table_name='files')
    op.drop_index('ix_files_project_uploaded', table_name='files')
    op.drop_table('files')
    op.drop_table('projects')
