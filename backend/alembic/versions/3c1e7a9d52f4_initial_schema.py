"""initial schema: users, bank_links, transfers, synced_transactions, reconciliation_items

Revision ID: 3c1e7a9d52f4
Revises:
Create Date: 2026-10-18 10:12:03.418207

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1e7a9d52f4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('users',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('email', sa.String(), nullable=False),
    sa.Column('first_name', sa.String(), nullable=False),
    sa.Column('last_name', sa.String(), nullable=False),
    sa.Column('address1', sa.String(), nullable=True),
    sa.Column('city', sa.String(), nullable=True),
    sa.Column('state', sa.String(length=2), nullable=True),
    sa.Column('postal_code', sa.String(), nullable=True),
    sa.Column('date_of_birth', sa.String(), nullable=True),
    sa.Column('ssn_last4', sa.String(length=4), nullable=True),
    sa.Column('dwolla_customer_id', sa.String(), nullable=True),
    sa.Column('dwolla_customer_url', sa.String(), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=True),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table('bank_links',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('user_id', sa.String(length=36), nullable=False),
    sa.Column('item_id', sa.String(), nullable=False),
    sa.Column('account_id', sa.String(), nullable=False),
    sa.Column('access_token', sa.String(), nullable=False),
    sa.Column('funding_source_url', sa.String(), nullable=False),
    sa.Column('shareable_id', sa.String(), nullable=False),
    sa.Column('institution_id', sa.String(), nullable=True),
    sa.Column('consent_status', sa.String(), nullable=False),
    sa.Column('transactions_cursor', sa.String(), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=True),
    sa.Column('updated_at', sa.DateTime(), nullable=True),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('user_id', 'account_id', name='uix_bank_link_user_account')
    )
    op.create_index(op.f('ix_bank_links_user_id'), 'bank_links', ['user_id'], unique=False)
    op.create_index(op.f('ix_bank_links_item_id'), 'bank_links', ['item_id'], unique=False)
    op.create_index(op.f('ix_bank_links_account_id'), 'bank_links', ['account_id'], unique=False)
    op.create_index(op.f('ix_bank_links_shareable_id'), 'bank_links', ['shareable_id'], unique=False)

    op.create_table('transfers',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('name', sa.String(), nullable=False),
    sa.Column('amount', sa.Numeric(precision=18, scale=2), nullable=False),
    sa.Column('channel', sa.String(), nullable=False),
    sa.Column('category', sa.String(), nullable=False),
    sa.Column('sender_bank_link_id', sa.String(length=36), nullable=False),
    sa.Column('receiver_bank_link_id', sa.String(length=36), nullable=False),
    sa.Column('email', sa.String(), nullable=True),
    sa.Column('transfer_url', sa.String(), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=True),
    sa.ForeignKeyConstraint(['receiver_bank_link_id'], ['bank_links.id'], ),
    sa.ForeignKeyConstraint(['sender_bank_link_id'], ['bank_links.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_transfers_sender_bank_link_id'), 'transfers', ['sender_bank_link_id'], unique=False)
    op.create_index(op.f('ix_transfers_receiver_bank_link_id'), 'transfers', ['receiver_bank_link_id'], unique=False)

    op.create_table('synced_transactions',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('bank_link_id', sa.String(length=36), nullable=False),
    sa.Column('transaction_id', sa.String(), nullable=False),
    sa.Column('account_id', sa.String(), nullable=False),
    sa.Column('name', sa.String(), nullable=False),
    sa.Column('amount', sa.Numeric(precision=18, scale=2), nullable=False),
    sa.Column('payment_channel', sa.String(), nullable=True),
    sa.Column('category', sa.String(), nullable=True),
    sa.Column('date', sa.Date(), nullable=False),
    sa.Column('pending', sa.Boolean(), nullable=False),
    sa.Column('logo_url', sa.String(), nullable=True),
    sa.ForeignKeyConstraint(['bank_link_id'], ['bank_links.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('bank_link_id', 'transaction_id', name='uix_synced_transaction_link_txn')
    )
    op.create_index(op.f('ix_synced_transactions_bank_link_id'), 'synced_transactions', ['bank_link_id'], unique=False)

    op.create_table('reconciliation_items',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('user_id', sa.String(length=36), nullable=True),
    sa.Column('operation', sa.String(), nullable=False),
    sa.Column('failed_step', sa.String(), nullable=False),
    sa.Column('dwolla_customer_url', sa.String(), nullable=True),
    sa.Column('funding_source_url', sa.String(), nullable=True),
    sa.Column('item_id', sa.String(), nullable=True),
    sa.Column('account_id', sa.String(), nullable=True),
    sa.Column('error', sa.Text(), nullable=True),
    sa.Column('status', sa.String(), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=True),
    sa.Column('resolved_at', sa.DateTime(), nullable=True),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_reconciliation_items_user_id'), 'reconciliation_items', ['user_id'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_reconciliation_items_user_id'), table_name='reconciliation_items')
    op.drop_table('reconciliation_items')
    op.drop_index(op.f('ix_synced_transactions_bank_link_id'), table_name='synced_transactions')
    op.drop_table('synced_transactions')
    op.drop_index(op.f('ix_transfers_receiver_bank_link_id'), table_name='transfers')
    op.drop_index(op.f('ix_transfers_sender_bank_link_id'), table_name='transfers')
    op.drop_table('transfers')
    op.drop_index(op.f('ix_bank_links_shareable_id'), table_name='bank_links')
    op.drop_index(op.f('ix_bank_links_account_id'), table_name='bank_links')
    op.drop_index(op.f('ix_bank_links_item_id'), table_name='bank_links')
    op.drop_index(op.f('ix_bank_links_user_id'), table_name='bank_links')
    op.drop_table('bank_links')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
