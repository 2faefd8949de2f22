"""Initial schema: api keys, projects, screenshots, analyses, steps

Revision ID: 001
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()
    insp = inspect(bind)
    if 'projects' in insp.get_table_names():
        return  # Already created by app init_database()

    op.create_table(
        'api_keys',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('key_name', sa.String(length=100), nullable=False),
        sa.Column('key_value', sa.Text(), nullable=False),
        sa.Column('created_at', sa.String(length=30), nullable=False),
        sa.Column('updated_at', sa.String(length=30), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'key_name', name='uq_api_keys_user_key_name'),
    )
    op.create_index('ix_api_keys_user_id', 'api_keys', ['user_id'])

    op.create_table(
        'projects',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('app_store_link', sa.Text(), nullable=True),
        sa.Column('feature_description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=30), server_default='analyzing', nullable=False),
        sa.Column('created_at', sa.String(length=30), nullable=False),
        sa.Column('updated_at', sa.String(length=30), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_projects_user_id', 'projects', ['user_id'])

    op.create_table(
        'project_screenshots',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('project_id', sa.String(length=36), nullable=False),
        sa.Column('file_url', sa.Text(), nullable=False),
        sa.Column('file_key', sa.Text(), nullable=False),
        sa.Column('uploaded_at', sa.String(length=30), nullable=False),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'project_analyses',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('project_id', sa.String(length=36), nullable=False),
        sa.Column('perplexity_output', sa.Text(), nullable=True),
        sa.Column('openai_output', sa.Text(), nullable=True),
        sa.Column('gemini_master_prompt', sa.Text(), nullable=True),
        sa.Column('db_schema', sa.Text(), nullable=True),
        sa.Column('rls_policies', sa.Text(), nullable=True),
        sa.Column('storage_buckets', sa.Text(), nullable=True),
        sa.Column('api_logic', sa.Text(), nullable=True),
        sa.Column('serverless_functions', sa.Text(), nullable=True),
        sa.Column('prompt_library', sa.Text(), nullable=True),
        sa.Column('tech_recommendations', sa.Text(), nullable=True),
        sa.Column('github_repo_url', sa.String(length=500), nullable=True),
        sa.Column('vercel_project_url', sa.String(length=500), nullable=True),
        sa.Column('deployment_status', sa.Text(), nullable=True),
        sa.Column('created_at', sa.String(length=30), nullable=False),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_project_analyses_project_id', 'project_analyses', ['project_id'])

    op.create_table(
        'project_steps',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('project_id', sa.String(length=36), nullable=False),
        sa.Column('step_number', sa.Integer(), nullable=False),
        sa.Column('step_name', sa.String(length=100), nullable=False),
        sa.Column('completed', sa.Boolean(), nullable=False),
        sa.Column('data', sa.Text(), nullable=True),
        sa.Column('completed_at', sa.String(length=30), nullable=True),
        sa.Column('created_at', sa.String(length=30), nullable=False),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_project_steps_project_id', 'project_steps', ['project_id'])


def downgrade() -> None:
    op.drop_index('ix_project_steps_project_id', table_name='project_steps')
    op.drop_table('project_steps')
    op.drop_index('ix_project_analyses_project_id', table_name='project_analyses')
    op.drop_table('project_analyses')
    op.drop_table('project_screenshots')
    op.drop_index('ix_projects_user_id', table_name='projects')
    op.drop_table('projects')
    op.drop_index('ix_api_keys_user_id', table_name='api_keys')
    op.drop_table('api_keys')
