"""create users and thumbnails tables

Revision ID: 3f9c2a7d1e4b
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3f9c2a7d1e4b'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(320), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'thumbnails',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.Text(), nullable=False, server_default=''),
        sa.Column('prompt_used', sa.Text(), nullable=False, server_default=''),
        sa.Column('style', sa.String(64), nullable=False),
        sa.Column('aspect_ratio', sa.String(16), nullable=False),
        sa.Column('color_scheme', sa.String(32), nullable=False),
        sa.Column('text_overlay', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_generating', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )

    # Create index on user_id for owner-scoped queries
    op.create_index('ix_thumbnails_user_id', 'thumbnails', ['user_id'])


def downgrade() -> None:
    op.drop_index('ix_thumbnails_user_id', table_name='thumbnails')
    op.drop_table('thumbnails')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
