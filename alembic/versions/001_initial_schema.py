"""Initial students' union schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def _user_fk(name: str) -> sa.Column:
    return sa.Column(name, sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('phone', sa.String(20), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('role', sa.String(100), nullable=False, server_default='member'),
        sa.Column('status', sa.String(20), nullable=False, server_default='ACTIVE'),
        *_timestamps(),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_phone', 'users', ['phone'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'members',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('birth_date', sa.Date(), nullable=True),
        sa.Column('date_joined', sa.Date(), nullable=False),
        sa.Column('is_executive', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('profile_image_url', sa.String(500), nullable=True),
        _user_fk('user_id'),
        *_timestamps(),
    )
    op.create_index('ix_members_id', 'members', ['id'])
    op.create_index('ix_members_full_name', 'members', ['full_name'])

    op.create_table(
        'dues_allocations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('regular_amount', sa.Numeric(15, 2), nullable=False),
        sa.Column('executive_amount', sa.Numeric(15, 2), nullable=False),
        _user_fk('created_by_user_id'),
        _user_fk('updated_by_user_id'),
        *_timestamps(),
    )
    op.create_index('ix_dues_allocations_id', 'dues_allocations', ['id'])
    op.create_index('ix_dues_allocations_year', 'dues_allocations', ['year'], unique=True)

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('amount', sa.Numeric(15, 2), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('member_id', sa.Integer(), sa.ForeignKey('members.id', ondelete='SET NULL'), nullable=True),
        sa.Column('month', sa.Integer(), nullable=True),
        sa.Column('year', sa.Integer(), nullable=True),
        sa.Column('member_type', sa.String(20), nullable=True),
        sa.Column('withdrawal_date', sa.Date(), nullable=True),
        sa.Column('reason_type', sa.String(20), nullable=True),
        sa.Column('withdrawn_by', sa.String(255), nullable=True),
        _user_fk('recorded_by_user_id'),
        *_timestamps(),
        sa.UniqueConstraint('type', 'member_id', 'year', 'month', name='uq_transactions_member_month'),
    )
    op.create_index('ix_transactions_id', 'transactions', ['id'])
    op.create_index('ix_transactions_type', 'transactions', ['type'])
    op.create_index('ix_transactions_timestamp', 'transactions', ['timestamp'])
    op.create_index('ix_transactions_member_id', 'transactions', ['member_id'])
    op.create_index('ix_transactions_year', 'transactions', ['year'])

    op.create_table(
        'finances',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('amount', sa.Numeric(15, 2), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('added_by', sa.String(255), nullable=True),
        sa.Column('year', sa.Integer(), nullable=True),
        sa.Column('member_id', sa.Integer(), sa.ForeignKey('members.id', ondelete='SET NULL'), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        _user_fk('recorded_by_user_id'),
        *_timestamps(),
    )
    op.create_index('ix_finances_id', 'finances', ['id'])
    op.create_index('ix_finances_type', 'finances', ['type'])
    op.create_index('ix_finances_timestamp', 'finances', ['timestamp'])
    op.create_index('ix_finances_year', 'finances', ['year'])

    op.create_table(
        'programs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('venue', sa.String(255), nullable=True),
        sa.Column('starts_at', sa.DateTime(), nullable=False),
        _user_fk('created_by_user_id'),
        *_timestamps(),
    )
    op.create_index('ix_programs_id', 'programs', ['id'])
    op.create_index('ix_programs_starts_at', 'programs', ['starts_at'])

    op.create_table(
        'writings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        _user_fk('author_user_id'),
        *_timestamps(),
    )
    op.create_index('ix_writings_id', 'writings', ['id'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('type', sa.String(30), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index('ix_notifications_id', 'notifications', ['id'])
    op.create_index('ix_notifications_timestamp', 'notifications', ['timestamp'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('action', sa.String(100), nullable=False),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        _user_fk('performed_by_user_id'),
        *_timestamps(),
    )
    op.create_index('ix_audit_logs_id', 'audit_logs', ['id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])

    # Holds the role permission grids under the "rolePermissions" key
    op.create_table(
        'system_settings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('key', sa.String(100), nullable=False),
        sa.Column('value', sa.JSON(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        _user_fk('created_by_user_id'),
        _user_fk('updated_by_user_id'),
        *_timestamps(),
    )
    op.create_index('ix_system_settings_id', 'system_settings', ['id'])
    op.create_index('ix_system_settings_key', 'system_settings', ['key'], unique=True)


def downgrade() -> None:
    for table in (
        'system_settings',
        'audit_logs',
        'notifications',
        'writings',
        'programs',
        'finances',
        'transactions',
        'dues_allocations',
        'members',
        'users',
    ):
        op.drop_table(table)
