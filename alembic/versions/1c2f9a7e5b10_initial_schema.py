"""create users, properties and prospects

Revision ID: 1c2f9a7e5b10
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '1c2f9a7e5b10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('phone', sa.String(), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('country_code', sa.String(length=2), nullable=False),
        sa.Column('confirmed_user_id', sa.Integer(), nullable=True),
        sa.Column('confirmed_token', sa.String(), nullable=True),
        sa.Column('language', sa.String(), nullable=True),
        sa.Column('phone_verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('two_factor_enabled', sa.Boolean(), nullable=True),
        sa.Column('two_factor_verified', sa.Boolean(), nullable=True),
        sa.Column('first_message_wizard_completed', sa.Boolean(), nullable=True),
        sa.Column('roles', sa.JSON(), nullable=False),
        sa.Column('credit', sa.Integer(), nullable=False),
        sa.Column('subscription_id', sa.String(), nullable=True),
        sa.Column('accounts', sa.JSON(), nullable=False),
        sa.Column('custom_credit', sa.JSON(), nullable=False),
        sa.Column('aquarium_data', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('confirmed_user_id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_phone', 'users', ['phone'])
    op.create_index('ix_users_confirmed_token', 'users', ['confirmed_token'])

    op.create_table(
        'properties',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('owner_id', sa.String(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('location', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('images', sa.JSON(), nullable=False),
        sa.Column('bedrooms', sa.Integer(), nullable=False),
        sa.Column('bathrooms', sa.Integer(), nullable=False),
        sa.Column('area', sa.Float(), nullable=False),
        sa.Column('description', sa.String(length=1000), nullable=True),
        sa.Column('features', sa.JSON(), nullable=False),
        sa.Column('added_date', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_date', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_properties_owner_id', 'properties', ['owner_id'])
    op.create_index('ix_properties_type', 'properties', ['type'])
    op.create_index('ix_properties_price', 'properties', ['price'])
    op.create_index('idx_property_owner_status', 'properties', ['owner_id', 'status'])

    op.create_table(
        'prospects',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('owner_id', sa.String(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('phone', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('source', sa.String(), nullable=False),
        sa.Column('preferences', sa.JSON(), nullable=False),
        sa.Column('matched_property_ids', sa.JSON(), nullable=False),
        sa.Column('interactions', sa.JSON(), nullable=False),
        sa.Column('last_contact', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('notes', sa.String(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_prospects_owner_id', 'prospects', ['owner_id'])
    op.create_index('ix_prospects_email', 'prospects', ['email'])
    op.create_index('ix_prospects_status', 'prospects', ['status'])
    op.create_index('idx_prospect_owner_active', 'prospects', ['owner_id', 'is_active'])
    op.create_index('idx_prospect_owner_email', 'prospects', ['owner_id', 'email'])


def downgrade() -> None:
    op.drop_table('prospects')
    op.drop_table('properties')
    op.drop_table('users')
