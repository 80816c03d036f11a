"""initial schema: accounts, places, user provinces

Revision ID: 0001
Revises:
Create Date: 2026-10-17
"""
from alembic import op
import sqlalchemy as sa


revision = '0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'app_users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('avatar_url', sa.String(1000), nullable=True),
        sa.Column('password_hash', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_app_users_email', 'app_users', ['email'], unique=True)

    op.create_table(
        'places',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('app_users.id'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('location', sa.String(255), nullable=False),
        sa.Column('date_added', sa.String(50), nullable=False),
        sa.Column('image', sa.Text(), nullable=False),
        sa.Column('is_marked', sa.Boolean(), nullable=False),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_places_user_id', 'places', ['user_id'])

    op.create_table(
        'user_provinces',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('app_users.id'), nullable=False),
        sa.Column('province_id', sa.String(100), nullable=False),
        sa.Column('province_name', sa.String(255), nullable=False),
        sa.Column('visited', sa.Boolean(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('user_id', 'province_id', name='uq_user_province'),
    )
    op.create_index('ix_user_provinces_user_id', 'user_provinces', ['user_id'])


def downgrade() -> None:
    op.drop_index('ix_user_provinces_user_id', table_name='user_provinces')
    op.drop_table('user_provinces')
    op.drop_index('ix_places_user_id', table_name='places')
    op.drop_table('places')
    op.drop_index('ix_app_users_email', table_name='app_users')
    op.drop_table('app_users')
