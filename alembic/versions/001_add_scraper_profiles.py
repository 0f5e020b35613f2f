"""Add scraper profiles table

Revision ID: 001_add_scraper_profiles
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_add_scraper_profiles'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create scraper_profiles table."""
    op.create_table(
        'scraper_profiles',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('media_type', sa.String(length=32), nullable=False, server_default='game'),
        sa.Column('default_locale', sa.String(length=16), nullable=True),
        sa.Column('search_provider_id', sa.String(length=128), nullable=False),
        sa.Column('slot_configs', sa.JSON(), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_scraper_profiles_media_type', 'scraper_profiles', ['media_type'], unique=False)
    op.create_index('idx_scraper_profiles_order', 'scraper_profiles', ['order'], unique=False)


def downgrade() -> None:
    """Drop scraper_profiles table."""
    op.drop_index('idx_scraper_profiles_order', table_name='scraper_profiles')
    op.drop_index('idx_scraper_profiles_media_type', table_name='scraper_profiles')
    op.drop_table('scraper_profiles')
