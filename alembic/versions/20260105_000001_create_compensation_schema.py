"""Create compensation ledger schema

Revision ID: 20260105_000001
Revises: 
Create Date: 2026-01-05

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '20260105_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


MONEY = sa.DECIMAL(20, 2)


def upgrade() -> None:
    op.create_table(
        'accounts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('code', sa.String(32), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('program_type', sa.String(20), nullable=False, server_default='INVESTOR'),
        sa.Column('status', sa.String(30), nullable=False, server_default='PENDING_ACTIVATION'),
        sa.Column('role', sa.String(20), nullable=False, server_default='USER'),
        sa.Column('upline_id', sa.Integer(), nullable=True),
        sa.Column('direct_referral_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('referral_counted', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['upline_id'], ['accounts.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('direct_referral_count >= 0', name='check_account_direct_referral_count_non_negative'),
        sa.CheckConstraint('upline_id IS NULL OR upline_id <> id', name='check_account_not_own_upline'),
    )
    op.create_index('ix_accounts_code', 'accounts', ['code'], unique=True)
    op.create_index('ix_accounts_status', 'accounts', ['status'])
    op.create_index('ix_accounts_upline_id', 'accounts', ['upline_id'])

    op.create_table(
        'positions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='ACTIVE'),
        sa.Column('package_id', sa.String(64), nullable=True),
        sa.Column('base_amount', MONEY, nullable=False),
        sa.Column('cap_multiplier', sa.DECIMAL(6, 2), nullable=False),
        sa.Column('cap_amount', MONEY, nullable=False),
        sa.Column('cycle_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('cap_status', sa.String(20), nullable=False, server_default='ACTIVE'),
        sa.Column('cap_reached_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('renewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('working_days_processed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('cumulative_yield', MONEY, nullable=False, server_default='0'),
        sa.Column('last_yield_date', sa.Date(), nullable=True),
        sa.Column('activated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('base_amount > 0', name='check_position_base_amount_positive'),
        sa.CheckConstraint('cap_multiplier > 0', name='check_position_cap_multiplier_positive'),
        sa.CheckConstraint('cycle_number >= 1', name='check_position_cycle_number_positive'),
        sa.CheckConstraint('working_days_processed >= 0', name='check_position_working_days_non_negative'),
    )
    op.create_index('ix_positions_account_id', 'positions', ['account_id'])
    op.create_index('ix_positions_status', 'positions', ['status'])
    op.create_index('ix_positions_cap_status', 'positions', ['cap_status'])
    # One ACTIVE position per account
    op.create_index(
        'uq_positions_one_active_per_account',
        'positions',
        ['account_id'],
        unique=True,
        postgresql_where=sa.text("status = 'ACTIVE'"),
    )

    op.create_table(
        'cap_trackers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('position_id', sa.Integer(), nullable=True),
        sa.Column('cycle_number', sa.Integer(), nullable=False),
        sa.Column('eligible_earnings_total', MONEY, nullable=False, server_default='0'),
        sa.Column('cap_amount', MONEY, nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='ACTIVE'),
        sa.Column('cap_reached_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['position_id'], ['positions.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('account_id', 'cycle_number', name='uq_cap_tracker_account_cycle'),
        sa.CheckConstraint('eligible_earnings_total >= 0', name='check_cap_tracker_total_non_negative'),
        sa.CheckConstraint('cap_amount >= 0', name='check_cap_tracker_cap_non_negative'),
    )
    op.create_index('ix_cap_trackers_account_id', 'cap_trackers', ['account_id'])

    op.create_table(
        'wallets',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('available_balance', MONEY, nullable=False, server_default='0'),
        sa.Column('pending_balance', MONEY, nullable=False, server_default='0'),
        sa.Column('lifetime_earned', MONEY, nullable=False, server_default='0'),
        sa.Column('lifetime_withdrawn', MONEY, nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('available_balance >= 0', name='check_wallet_available_non_negative'),
        sa.CheckConstraint('pending_balance >= 0', name='check_wallet_pending_non_negative'),
        sa.CheckConstraint('lifetime_earned >= 0', name='check_wallet_lifetime_earned_non_negative'),
        sa.CheckConstraint('lifetime_withdrawn >= 0', name='check_wallet_lifetime_withdrawn_non_negative'),
    )
    op.create_index('ix_wallets_account_id', 'wallets', ['account_id'], unique=True)

    op.create_table(
        'ledger_entries',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(30), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('source_account_id', sa.Integer(), nullable=True),
        sa.Column('level', sa.Integer(), nullable=True),
        sa.Column('position_id', sa.Integer(), nullable=True),
        sa.Column('counts_toward_cap', sa.Boolean(), nullable=True),
        sa.Column('cycle_number', sa.Integer(), nullable=True),
        sa.Column('details', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('idempotency_key', sa.String(200), nullable=True),
        sa.Column('config_version', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('idempotency_key'),
    )
    op.create_index('ix_ledger_entries_account_id', 'ledger_entries', ['account_id'])
    op.create_index('ix_ledger_entries_source_account_id', 'ledger_entries', ['source_account_id'])
    op.create_index('idx_ledger_account_type', 'ledger_entries', ['account_id', 'type'])
    op.create_index(
        'idx_ledger_account_source_level',
        'ledger_entries',
        ['account_id', 'source_account_id', 'level'],
    )
    op.create_index('idx_ledger_account_created', 'ledger_entries', ['account_id', 'created_at'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('ledger_entry_id', sa.BigInteger(), nullable=False),
        sa.Column('type', sa.String(30), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('balance_kind', sa.String(20), nullable=False, server_default='available'),
        sa.Column('balance_before', MONEY, nullable=False),
        sa.Column('balance_after', MONEY, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['ledger_entry_id'], ['ledger_entries.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('ledger_entry_id'),
    )
    op.create_index('ix_transactions_account_id', 'transactions', ['account_id'])

    op.create_table(
        'renewal_records',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('position_id', sa.Integer(), nullable=False),
        sa.Column('previous_position_id', sa.Integer(), nullable=True),
        sa.Column('old_cycle_number', sa.Integer(), nullable=False),
        sa.Column('new_cycle_number', sa.Integer(), nullable=False),
        sa.Column('old_package_id', sa.String(64), nullable=True),
        sa.Column('new_package_id', sa.String(64), nullable=True),
        sa.Column('new_base_amount', MONEY, nullable=False),
        sa.Column('new_cap_amount', MONEY, nullable=False),
        sa.Column('amount_paid', MONEY, nullable=False, server_default='0'),
        sa.Column('fee_amount', MONEY, nullable=False, server_default='0'),
        sa.Column('payer_role', sa.String(20), nullable=False),
        sa.Column('payer_account_id', sa.Integer(), nullable=True),
        sa.Column('method', sa.String(30), nullable=False),
        sa.Column('payment_reference', sa.String(255), nullable=True),
        sa.Column('payment_entry_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['position_id'], ['positions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['previous_position_id'], ['positions.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_renewal_records_account_id', 'renewal_records', ['account_id'])

    op.create_table(
        'audit_records',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('action', sa.String(64), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=True),
        sa.Column('actor_id', sa.Integer(), nullable=True),
        sa.Column('ledger_entry_id', sa.BigInteger(), nullable=True),
        sa.Column('config_version', sa.Integer(), nullable=True),
        sa.Column('details', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_records_action', 'audit_records', ['action'])
    op.create_index('idx_audit_account_action', 'audit_records', ['account_id', 'action'])

    op.create_table(
        'payout_requests',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('week_key', sa.String(10), nullable=False),
        sa.Column('gross_amount', MONEY, nullable=False),
        sa.Column('admin_charges', MONEY, nullable=False),
        sa.Column('admin_charges_percent', sa.DECIMAL(7, 4), nullable=False),
        sa.Column('net_amount', MONEY, nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('ledger_entry_id', sa.BigInteger(), nullable=True),
        sa.Column('requested_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('account_id', 'week_key', name='uq_payout_account_week'),
        sa.CheckConstraint('gross_amount > 0', name='check_payout_gross_positive'),
        sa.CheckConstraint('net_amount >= 0', name='check_payout_net_non_negative'),
    )
    op.create_index('ix_payout_requests_account_id', 'payout_requests', ['account_id'])
    op.create_index('ix_payout_requests_status', 'payout_requests', ['status'])

    op.create_table(
        'config_documents',
        sa.Column('version', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('document', postgresql.JSONB(), nullable=False),
        sa.Column('published_by', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('version'),
    )


def downgrade() -> None:
    op.drop_table('config_documents')

    op.drop_index('ix_payout_requests_status', 'payout_requests')
    op.drop_index('ix_payout_requests_account_id', 'payout_requests')
    op.drop_table('payout_requests')

    op.drop_index('idx_audit_account_action', 'audit_records')
    op.drop_index('ix_audit_records_action', 'audit_records')
    op.drop_table('audit_records')

    op.drop_index('ix_renewal_records_account_id', 'renewal_records')
    op.drop_table('renewal_records')

    op.drop_index('ix_transactions_account_id', 'transactions')
    op.drop_table('transactions')

    op.drop_index('idx_ledger_account_created', 'ledger_entries')
    op.drop_index('idx_ledger_account_source_level', 'ledger_entries')
    op.drop_index('idx_ledger_account_type', 'ledger_entries')
    op.drop_index('ix_ledger_entries_source_account_id', 'ledger_entries')
    op.drop_index('ix_ledger_entries_account_id', 'ledger_entries')
    op.drop_table('ledger_entries')

    op.drop_index('ix_wallets_account_id', 'wallets')
    op.drop_table('wallets')

    op.drop_index('ix_cap_trackers_account_id', 'cap_trackers')
    op.drop_table('cap_trackers')

    op.drop_index('uq_positions_one_active_per_account', 'positions')
    op.drop_index('ix_positions_cap_status', 'positions')
    op.drop_index('ix_positions_status', 'positions')
    op.drop_index('ix_positions_account_id', 'positions')
    op.drop_table('positions')

    op.drop_index('ix_accounts_upline_id', 'accounts')
    op.drop_index('ix_accounts_status', 'accounts')
    op.drop_index('ix_accounts_code', 'accounts')
    op.drop_table('accounts')
