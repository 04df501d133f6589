"""create ai artist ledger tables

Revision ID: k1l2m3n4o5p6
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'k1l2m3n4o5p6'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Artist details (one row per artist)
    op.create_table(
        'ai_artist_details',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('artist_id', sa.String(64), nullable=False),
        sa.Column('personality_traits', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('visual_style', sa.String(255), nullable=True),
        sa.Column('speaking_style', sa.String(255), nullable=True),
        sa.Column('backstory', sa.Text(), nullable=True),
        sa.Column('influences', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('unique_elements', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('generation_parameters', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('performance_metrics', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('ai_training_data', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_ai_artist_details_artist_id', 'ai_artist_details', ['artist_id'], unique=True)

    # Generated images
    op.create_table(
        'ai_artist_images',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('artist_id', sa.String(64), nullable=False),
        sa.Column('image_url', sa.String(1000), nullable=False),
        sa.Column('prompt', sa.Text(), nullable=False),
        sa.Column('model', sa.String(100), nullable=False),
        sa.Column('is_primary', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('tags', postgresql.ARRAY(sa.String(64)), nullable=False, server_default='{}'),
        sa.Column('generated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_ai_artist_images_artist_generated', 'ai_artist_images', ['artist_id', 'generated_at'])

    # Generation ledger
    generation_type = postgresql.ENUM('text', 'image', 'audio', 'video', 'persona', name='generation_type')
    generation_status = postgresql.ENUM('pending', 'succeeded', 'failed', name='generation_status')

    op.create_table(
        'ai_generation_history',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('artist_id', sa.String(64), nullable=True),
        sa.Column('generation_type', generation_type, nullable=False),
        sa.Column('prompt', sa.Text(), nullable=False),
        sa.Column('refined_prompt', sa.Text(), nullable=True),
        sa.Column('parameters', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('result_data', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('service_used', sa.String(50), nullable=False),
        sa.Column('status', generation_status, nullable=False, server_default='pending'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_ai_generation_history_artist_id', 'ai_generation_history', ['artist_id'])
    op.create_index('idx_ai_generation_history_user_created', 'ai_generation_history', ['user_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('idx_ai_generation_history_user_created', table_name='ai_generation_history')
    op.drop_index('ix_ai_generation_history_artist_id', table_name='ai_generation_history')
    op.drop_table('ai_generation_history')
    op.execute('DROP TYPE IF EXISTS generation_status')
    op.execute('DROP TYPE IF EXISTS generation_type')

    op.drop_index('idx_ai_artist_images_artist_generated', table_name='ai_artist_images')
    op.drop_table('ai_artist_images')

    op.drop_index('ix_ai_artist_details_artist_id', table_name='ai_artist_details')
    op.drop_table('ai_artist_details')
