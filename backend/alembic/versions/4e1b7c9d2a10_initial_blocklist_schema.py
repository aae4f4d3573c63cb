"""Initial blocklist schema

Revision ID: 4e1b7c9d2a10
Revises: 
Create Date: 2026-10-19 09:12:31.504118

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4e1b7c9d2a10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

INDICATOR_TABLES = ('ip_addresses', 'hash_indicators', 'domain_indicators', 'url_indicators')


def _create_indicator_table(name: str) -> None:
    op.create_table(
        name,
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('value', sa.String(length=2048), nullable=False),
        sa.Column('lookup_key', sa.String(length=2048), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deactivated_by', sa.Integer(), nullable=True),
        sa.Column('deactivated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f(f'ix_{name}_lookup_key'), name, ['lookup_key'], unique=True)
    op.create_index(f'ix_{name}_active_value', name, ['active', 'value'], unique=False)


def upgrade() -> None:
    """Upgrade schema."""
    for name in INDICATOR_TABLES:
        _create_indicator_table(name)

    # Shared audit log
    op.create_table(
        'ioc_audit_log',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('ioc_type', sa.String(length=16), nullable=False),
        sa.Column('indicator_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=16), nullable=False),
        sa.Column('actor_user_id', sa.Integer(), nullable=True),
        sa.Column('prev_value', sa.JSON(), nullable=True),
        sa.Column('new_value', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_ioc_audit_log_indicator', 'ioc_audit_log', ['ioc_type', 'indicator_id'], unique=False)

    # Slack operators
    op.create_table(
        'slack_users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('slack_user_id', sa.String(length=32), nullable=False),
        sa.Column('team_id', sa.String(length=32), nullable=True),
        sa.Column('display_name', sa.String(length=256), nullable=True),
        sa.Column('real_name', sa.String(length=256), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_slack_users_slack_user_id'), 'slack_users', ['slack_user_id'], unique=True)

    # Channel whitelist
    op.create_table(
        'slack_channel_whitelist',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('channel_id', sa.String(length=32), nullable=False),
        sa.Column('channel_name', sa.String(length=128), nullable=True),
        sa.Column('team_id', sa.String(length=32), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_slack_channel_whitelist_channel_id'), 'slack_channel_whitelist', ['channel_id'], unique=True)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_slack_channel_whitelist_channel_id'), table_name='slack_channel_whitelist')
    op.drop_table('slack_channel_whitelist')
    op.drop_index(op.f('ix_slack_users_slack_user_id'), table_name='slack_users')
    op.drop_table('slack_users')
    op.drop_index('ix_ioc_audit_log_indicator', table_name='ioc_audit_log')
    op.drop_table('ioc_audit_log')
    for name in reversed(INDICATOR_TABLES):
        op.drop_index(f'ix_{name}_active_value', table_name=name)
        op.drop_index(op.f(f'ix_{name}_lookup_key'), table_name=name)
        op.drop_table(name)
