"""Create merchants, payment_requests and transaction_records tables

Revision ID: 20261016_000001
Revises:
Create Date: 2026-10-16

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261016_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'merchants',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('wallet_address', sa.String(64), nullable=False),
        sa.Column('owner_identity', sa.String(128), nullable=False),
        sa.Column('accepts_sol', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('accepts_usdc', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('total_payments_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_volume_sol', sa.DECIMAL(30, 9), nullable=False, server_default='0'),
        sa.Column('total_volume_usdc', sa.DECIMAL(30, 9), nullable=False, server_default='0'),
        sa.Column('last_updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('total_payments_count >= 0', name='check_merchant_payments_count_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('wallet_address'),
    )
    op.create_index('ix_merchants_wallet_address', 'merchants', ['wallet_address'])
    op.create_index('ix_merchants_owner_identity', 'merchants', ['owner_identity'])

    op.create_table(
        'payment_requests',
        sa.Column('id', sa.String(32), nullable=False),
        sa.Column('merchant_id', sa.String(64), nullable=False),
        sa.Column('merchant_name', sa.String(255), nullable=False),
        sa.Column('merchant_wallet', sa.String(64), nullable=False),
        sa.Column('amount', sa.DECIMAL(18, 9), nullable=False),
        sa.Column('currency', sa.String(10), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('tx_signature', sa.String(128), nullable=True),
        sa.Column('sender_wallet', sa.String(64), nullable=True),
        sa.CheckConstraint('amount > 0', name='check_payment_request_amount_positive'),
        sa.CheckConstraint("status IN ('pending', 'paid', 'expired')", name='check_payment_request_status'),
        sa.CheckConstraint("currency IN ('SOL', 'USDC')", name='check_payment_request_currency'),
        sa.ForeignKeyConstraint(['merchant_id'], ['merchants.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_payment_requests_merchant_id', 'payment_requests', ['merchant_id'])
    op.create_index('ix_payment_requests_status_expires_at', 'payment_requests', ['status', 'expires_at'])

    op.create_table(
        'transaction_records',
        sa.Column('tx_signature', sa.String(128), nullable=False),
        sa.Column('request_id', sa.String(32), nullable=False),
        sa.Column('merchant_id', sa.String(64), nullable=False),
        sa.Column('merchant_name', sa.String(255), nullable=False),
        sa.Column('merchant_wallet', sa.String(64), nullable=False),
        sa.Column('sender_wallet', sa.String(64), nullable=False),
        sa.Column('amount', sa.DECIMAL(18, 9), nullable=False),
        sa.Column('currency', sa.String(10), nullable=False),
        sa.Column('block_time', sa.BigInteger(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['request_id'], ['payment_requests.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['merchant_id'], ['merchants.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('tx_signature'),
        sa.UniqueConstraint('request_id'),
    )
    op.create_index('ix_transaction_records_sender_created', 'transaction_records', ['sender_wallet', 'created_at'])
    op.create_index('ix_transaction_records_merchant_created', 'transaction_records', ['merchant_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('ix_transaction_records_merchant_created', table_name='transaction_records')
    op.drop_index('ix_transaction_records_sender_created', table_name='transaction_records')
    op.drop_table('transaction_records')

    op.drop_index('ix_payment_requests_status_expires_at', table_name='payment_requests')
    op.drop_index('ix_payment_requests_merchant_id', table_name='payment_requests')
    op.drop_table('payment_requests')

    op.drop_index('ix_merchants_owner_identity', table_name='merchants')
    op.drop_index('ix_merchants_wallet_address', table_name='merchants')
    op.drop_table('merchants')
