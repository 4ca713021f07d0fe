"""initial checkout schema

Revision ID: bc0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

This migration creates the complete BusinessCart schema from scratch:
- codes, accounts, account_customer_codes: onboarding and role payloads
- refresh_tokens, blacklisted_tokens: server-side token state
- products: seller listings
- carts, cart_items: mutable per-(buyer, seller) carts
- quotes, quote_items: priced, time-boxed cart snapshots
- orders, order_items: finalized purchases (one per quote)
- checkout_cleanups: pending post-order cart/quote cleanup
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'bc0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create all tables from scratch."""

    # ============================================================================
    # codes: pre-issued onboarding codes
    # ============================================================================
    op.create_table(
        'codes',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('company_code', sa.String(length=64), nullable=False),
        sa.Column('customer_code', sa.String(length=64), nullable=False),
        sa.Column('partner_code', sa.String(length=64), nullable=True),
        sa.Column('is_claimed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('partner_is_claimed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_code'),
        sa.UniqueConstraint('customer_code'),
        sa.UniqueConstraint('partner_code'),
    )

    # ============================================================================
    # accounts: every role in one table
    # ============================================================================
    op.create_table(
        'accounts',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('account_status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('company_name', sa.String(length=255), nullable=True),
        sa.Column('company_code_id', sa.String(length=32), nullable=True),
        sa.Column('company_code', sa.String(length=64), nullable=True),
        sa.Column('company_status', sa.String(length=32), nullable=True),
        sa.Column('partner_code_id', sa.String(length=32), nullable=True),
        sa.Column('partner_code', sa.String(length=64), nullable=True),
        sa.Column('partner_status', sa.String(length=32), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('ix_accounts_role', 'accounts', ['role'])

    op.create_table(
        'account_customer_codes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.String(length=32), nullable=False),
        sa.Column('code_id', sa.String(length=32), nullable=False),
        sa.Column('customer_code', sa.String(length=64), nullable=False),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('account_id', 'code_id', name='uq_account_customer_code'),
    )
    op.create_index('ix_account_customer_codes_account_id', 'account_customer_codes', ['account_id'])
    op.create_index('ix_account_customer_codes_code_id', 'account_customer_codes', ['code_id'])

    # ============================================================================
    # token state
    # ============================================================================
    op.create_table(
        'refresh_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.String(length=32), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token_hash'),
    )
    op.create_index('ix_refresh_tokens_account_id', 'refresh_tokens', ['account_id'])
    op.create_index('ix_refresh_tokens_expires_at', 'refresh_tokens', ['expires_at'])

    op.create_table(
        'blacklisted_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token_hash'),
    )
    op.create_index('ix_blacklisted_tokens_expires_at', 'blacklisted_tokens', ['expires_at'])

    # ============================================================================
    # products: seller listings
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('seller_id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('image', sa.String(length=1024), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_products_seller_id', 'products', ['seller_id'])

    # ============================================================================
    # carts
    # ============================================================================
    op.create_table(
        'carts',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('buyer_id', sa.String(length=32), nullable=False),
        sa.Column('seller_id', sa.String(length=32), nullable=False),
        sa.Column('total_price', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('buyer_id', 'seller_id', name='uq_carts_buyer_seller'),
    )
    op.create_index('ix_carts_buyer_id', 'carts', ['buyer_id'])
    op.create_index('ix_carts_seller_id', 'carts', ['seller_id'])

    op.create_table(
        'cart_items',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('cart_id', sa.String(length=32), nullable=False),
        sa.Column('product_id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('added_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['cart_id'], ['carts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('cart_id', 'product_id', name='uq_cart_items_cart_product'),
        sa.CheckConstraint('quantity > 0', name='ck_cart_items_quantity_positive'),
    )
    op.create_index('ix_cart_items_cart_id', 'cart_items', ['cart_id'])

    # ============================================================================
    # quotes
    # ============================================================================
    op.create_table(
        'quotes',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('cart_id', sa.String(length=32), nullable=False),
        sa.Column('buyer_id', sa.String(length=32), nullable=False),
        sa.Column('seller_id', sa.String(length=32), nullable=False),
        sa.Column('subtotal', sa.Numeric(14, 4), nullable=False),
        sa.Column('discount', sa.Numeric(14, 4), nullable=False, server_default='0'),
        sa.Column('shipping_cost', sa.Numeric(14, 4), nullable=False),
        sa.Column('tax_amount', sa.Numeric(14, 4), nullable=False),
        sa.Column('grand_total', sa.Numeric(14, 4), nullable=False),
        sa.Column('promo_code', sa.String(length=32), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_quotes_buyer_id', 'quotes', ['buyer_id'])
    op.create_index('ix_quotes_seller_id', 'quotes', ['seller_id'])
    op.create_index('ix_quotes_expires_at', 'quotes', ['expires_at'])

    op.create_table(
        'quote_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('quote_id', sa.String(length=32), nullable=False),
        sa.Column('item_id', sa.String(length=32), nullable=False),
        sa.Column('product_id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['quote_id'], ['quotes.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_quote_items_quote_id', 'quote_items', ['quote_id'])

    # ============================================================================
    # orders
    # ============================================================================
    op.create_table(
        'orders',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('quote_id', sa.String(length=32), nullable=False),
        sa.Column('buyer_id', sa.String(length=32), nullable=False),
        sa.Column('seller_id', sa.String(length=32), nullable=False),
        sa.Column('subtotal', sa.Numeric(14, 4), nullable=False),
        sa.Column('discount', sa.Numeric(14, 4), nullable=False, server_default='0'),
        sa.Column('shipping_cost', sa.Numeric(14, 4), nullable=False),
        sa.Column('tax_amount', sa.Numeric(14, 4), nullable=False),
        sa.Column('grand_total', sa.Numeric(14, 4), nullable=False),
        sa.Column('payment_method', sa.String(length=32), nullable=False),
        sa.Column('transaction_id', sa.String(length=128), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('quote_id', name='uq_orders_quote_id'),
    )
    op.create_index('ix_orders_buyer_id', 'orders', ['buyer_id'])
    op.create_index('ix_orders_seller_id', 'orders', ['seller_id'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.String(length=32), nullable=False),
        sa.Column('product_id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])

    # ============================================================================
    # checkout_cleanups: post-order compensation, keyed by quote id
    # ============================================================================
    op.create_table(
        'checkout_cleanups',
        sa.Column('quote_id', sa.String(length=32), nullable=False),
        sa.Column('order_id', sa.String(length=32), nullable=False),
        sa.Column('buyer_id', sa.String(length=32), nullable=False),
        sa.Column('seller_id', sa.String(length=32), nullable=False),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_error', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('quote_id'),
        sa.UniqueConstraint('order_id'),
    )
    op.create_index('ix_checkout_cleanups_completed_at', 'checkout_cleanups', ['completed_at'])


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('checkout_cleanups')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('quote_items')
    op.drop_table('quotes')
    op.drop_table('cart_items')
    op.drop_table('carts')
    op.drop_table('products')
    op.drop_table('blacklisted_tokens')
    op.drop_table('refresh_tokens')
    op.drop_table('account_customer_codes')
    op.drop_table('accounts')
    op.drop_table('codes')
