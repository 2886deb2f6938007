"""initial

Revision ID: 0001_initial
Revises: 
Create Date: 2026-10-17 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # projects: one row per WhatsApp number we answer for
    op.create_table(
        'tenants',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('routing_key', sa.String(50), nullable=False),
        sa.Column('delivery_credential', sa.Text(), nullable=True),
        sa.Column('system_prompt', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_tenants_routing_key', 'tenants', ['routing_key'], unique=True)

    # conversation log, append-only
    op.create_table(
        'messages',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('tenant_id', sa.Integer(),
                  sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('from_number', sa.String(50), nullable=False),
        sa.Column('to_number', sa.String(50), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('direction', sa.Enum('incoming', 'outgoing', name='message_direction'), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('metadata', sa.JSON(), nullable=False),
    )
    op.create_index('ix_messages_tenant_id', 'messages', ['tenant_id'])


def downgrade():
    # messages reference tenants, drop them first
    op.drop_index('ix_messages_tenant_id', table_name='messages')
    op.drop_table('messages')
    op.drop_index('ix_tenants_routing_key', table_name='tenants')
    op.drop_table('tenants')
    sa.Enum(name='message_direction').drop(op.get_bind(), checkfirst=True)
