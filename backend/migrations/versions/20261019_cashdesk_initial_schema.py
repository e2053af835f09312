"""Cash desk initial schema

Revision ID: 20261019_cashdesk
Revises:
Create Date: 2026-10-19

Creates:
1. products (mutable stock counter, optimistic version)
2. sales and sale_lines (copied name/price; product_id without FK)
3. register_state (singleton drawer reset point)
4. cash_movements (manual inflows, outflows, purchases)
5. membership_prices (service tier price table)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_cashdesk'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. PRODUCTS
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('stock >= 0', name='ck_products_stock_non_negative'),
        sa.CheckConstraint('price_cents >= 0', name='ck_products_price_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index('ix_products_name', ['name'], unique=False)

    # ==========================================================================
    # 2. SALES AND SALE LINES
    # ==========================================================================
    op.create_table('sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('payment_method', sa.String(length=16), nullable=False, server_default='drawer'),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('amount_tendered_cents', sa.Integer(), nullable=False),
        sa.Column('change_due_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('discount_bps', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('note', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sales', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sales_created_at'), ['created_at'], unique=False)
        batch_op.create_index('ix_sales_method_created', ['payment_method', 'created_at'], unique=False)

    op.create_table('sale_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint('quantity > 0', name='ck_sale_lines_quantity_positive'),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sale_lines', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sale_lines_sale_id'), ['sale_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sale_lines_product_id'), ['product_id'], unique=False)

    # ==========================================================================
    # 3. REGISTER STATE
    # ==========================================================================
    op.create_table('register_state',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('opening_balance_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('opened_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id')
    )

    # ==========================================================================
    # 4. CASH MOVEMENTS
    # ==========================================================================
    op.create_table('cash_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(length=16), nullable=False),
        sa.Column('concept', sa.String(length=255), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('amount_cents > 0', name='ck_cash_movements_amount_positive'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('cash_movements', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_cash_movements_kind'), ['kind'], unique=False)
        batch_op.create_index(batch_op.f('ix_cash_movements_created_at'), ['created_at'], unique=False)

    # ==========================================================================
    # 5. MEMBERSHIP PRICES
    # ==========================================================================
    op.create_table('membership_prices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('service_category', sa.String(length=64), nullable=False),
        sa.Column('tier_key', sa.String(length=64), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('updated_by', sa.String(length=128), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('price_cents >= 0', name='ck_membership_prices_price_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('service_category', 'tier_key', name='uq_membership_prices_category_tier'),
        sqlite_autoincrement=True
    )


def downgrade():
    op.drop_table('membership_prices')
    with op.batch_alter_table('cash_movements', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_cash_movements_created_at'))
        batch_op.drop_index(batch_op.f('ix_cash_movements_kind'))
    op.drop_table('cash_movements')
    op.drop_table('register_state')
    with op.batch_alter_table('sale_lines', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_sale_lines_product_id'))
        batch_op.drop_index(batch_op.f('ix_sale_lines_sale_id'))
    op.drop_table('sale_lines')
    with op.batch_alter_table('sales', schema=None) as batch_op:
        batch_op.drop_index('ix_sales_method_created')
        batch_op.drop_index(batch_op.f('ix_sales_created_at'))
    op.drop_table('sales')
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.drop_index('ix_products_name')
    op.drop_table('products')
