"""create ledger tables

Revision ID: 3c1e9a7d52b0
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1e9a7d52b0'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('username', sa.String(), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'stocks',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('user_id', 'name', name='uix_stock_user_name'),
    )
    op.create_index('ix_stocks_user_id', 'stocks', ['user_id'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('stock_id', sa.String(length=36), sa.ForeignKey('stocks.id'), nullable=False),
        sa.Column('transaction_type', sa.String(length=10), nullable=False),
        sa.Column('shares', sa.Integer(), nullable=False),
        sa.Column('price_per_share', sa.Numeric(18, 6), nullable=False),
        sa.Column('total_amount', sa.Numeric(18, 6), nullable=False),
        sa.Column('transaction_date', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint("transaction_type IN ('buy', 'sell')", name='ck_transaction_type_valid'),
        sa.CheckConstraint('shares > 0', name='ck_transaction_shares_positive'),
        sa.CheckConstraint('price_per_share > 0', name='ck_transaction_price_positive'),
    )
    op.create_index('ix_transactions_user_id', 'transactions', ['user_id'])
    op.create_index('ix_transactions_stock_id', 'transactions', ['stock_id'])
    op.create_index('ix_transactions_transaction_date', 'transactions', ['transaction_date'])

    # buy_transaction_id has no foreign key: a lot outlives
    # the deletion of the buy transaction that created it.
    op.create_table(
        'share_lots',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('stock_id', sa.String(length=36), sa.ForeignKey('stocks.id'), nullable=False),
        sa.Column('buy_transaction_id', sa.String(length=36), nullable=True),
        sa.Column('shares', sa.Integer(), nullable=False),
        sa.Column('buy_price_per_share', sa.Numeric(18, 6), nullable=False),
        sa.Column('buy_date', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(length=10), nullable=False),
        sa.Column(
            'sell_transaction_id',
            sa.String(length=36),
            sa.ForeignKey('transactions.id'),
            nullable=True,
        ),
        sa.Column('sell_price_per_share', sa.Numeric(18, 6), nullable=True),
        sa.Column('sell_date', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint("status IN ('active', 'sold')", name='ck_share_lot_status_valid'),
        sa.CheckConstraint('shares > 0', name='ck_share_lot_shares_positive'),
        sa.CheckConstraint('buy_price_per_share > 0', name='ck_share_lot_buy_price_positive'),
        sa.CheckConstraint(
            "(status = 'active' AND sell_transaction_id IS NULL "
            "AND sell_price_per_share IS NULL AND sell_date IS NULL) OR "
            "(status = 'sold' AND sell_transaction_id IS NOT NULL "
            "AND sell_price_per_share IS NOT NULL AND sell_date IS NOT NULL)",
            name='ck_share_lot_sell_fields_match_status',
        ),
    )
    op.create_index('ix_share_lots_user_id', 'share_lots', ['user_id'])
    op.create_index('ix_share_lots_stock_id', 'share_lots', ['stock_id'])
    op.create_index('ix_share_lots_buy_transaction_id', 'share_lots', ['buy_transaction_id'])
    op.create_index('ix_share_lots_status', 'share_lots', ['status'])
    op.create_index('ix_share_lots_sell_transaction_id', 'share_lots', ['sell_transaction_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('share_lots')
    op.drop_table('transactions')
    op.drop_table('stocks')
    op.drop_table('users')
