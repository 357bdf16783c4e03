"""initial ledger schema

Revision ID: b7c1d2e3f4a5
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the stock-and-order ledger schema from scratch:
- categories / products: catalog plus the authoritative current_stock counter
- orders: single-product customer orders with JSON sub-objects
- purchases / expenses: immutable money and stock events
- audit_logs: append-only before/after trail
- document_sequences: per-type ORD/PUR/EXP/PAY numbering
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b7c1d2e3f4a5'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # categories
    # ============================================================================
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_categories_name'),
        sqlite_autoincrement=True
    )

    # ============================================================================
    # products: stock counter guarded by a CHECK and an optimistic version column
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('cost_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('selling_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('opening_stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('current_stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('current_stock >= 0', name='ck_products_current_stock_non_negative'),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_category_id', 'products', ['category_id'])
    op.create_index('ix_products_category_name', 'products', ['category_id', 'name'])

    # ============================================================================
    # orders
    # ============================================================================
    op.create_table(
        'orders',
        sa.Column('id', sa.String(length=50), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False),
        sa.Column('ref_numbers', sa.JSON(), nullable=True),
        sa.Column('customer', sa.JSON(), nullable=True),
        sa.Column('discount', sa.JSON(), nullable=True),
        sa.Column('delivery', sa.JSON(), nullable=False),
        sa.Column('payment', sa.JSON(), nullable=False),
        sa.Column('financials', sa.JSON(), nullable=False),
        sa.Column('meta', sa.JSON(), nullable=False),
        sa.Column('order_date', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint('quantity > 0', name='ck_orders_quantity_positive'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_orders_product_id', 'orders', ['product_id'])
    op.create_index('ix_orders_order_date', 'orders', ['order_date'])
    op.create_index('ix_orders_product_date', 'orders', ['product_id', 'order_date'])

    # ============================================================================
    # purchases
    # ============================================================================
    op.create_table(
        'purchases',
        sa.Column('id', sa.String(length=50), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('purchase_price_cents', sa.Integer(), nullable=False),
        sa.Column('total_cost_cents', sa.Integer(), nullable=False),
        sa.Column('supplier_name', sa.String(length=255), nullable=True),
        sa.Column('purchase_date', sa.Date(), nullable=False),
        sa.Column('created_by', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('quantity > 0', name='ck_purchases_quantity_positive'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_purchases_product_id', 'purchases', ['product_id'])
    op.create_index('ix_purchases_purchase_date', 'purchases', ['purchase_date'])

    # ============================================================================
    # expenses
    # ============================================================================
    op.create_table(
        'expenses',
        sa.Column('id', sa.String(length=50), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('created_by', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('amount_cents > 0', name='ck_expenses_amount_positive'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_expenses_date', 'expenses', ['date'])

    # ============================================================================
    # audit_logs: append-only, id doubles as tie-breaker for equal timestamps
    # ============================================================================
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('target_id', sa.String(length=50), nullable=False),
        sa.Column('module', sa.String(length=32), nullable=False),
        sa.Column('action', sa.String(length=32), nullable=False),
        sa.Column('old_state', sa.JSON(), nullable=True),
        sa.Column('new_state', sa.JSON(), nullable=True),
        sa.Column('changed_by', sa.String(length=255), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_audit_logs_target_id', 'audit_logs', ['target_id'])
    op.create_index('ix_audit_logs_module', 'audit_logs', ['module'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_timestamp', 'audit_logs', ['timestamp'])
    op.create_index('ix_audit_logs_module_target', 'audit_logs', ['module', 'target_id'])

    # ============================================================================
    # document_sequences
    # ============================================================================
    op.create_table(
        'document_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_type', name='uq_doc_sequences_type'),
        sqlite_autoincrement=True
    )


def downgrade():
    op.drop_table('document_sequences')

    op.drop_index('ix_audit_logs_module_target', table_name='audit_logs')
    op.drop_index('ix_audit_logs_timestamp', table_name='audit_logs')
    op.drop_index('ix_audit_logs_action', table_name='audit_logs')
    op.drop_index('ix_audit_logs_module', table_name='audit_logs')
    op.drop_index('ix_audit_logs_target_id', table_name='audit_logs')
    op.drop_table('audit_logs')

    op.drop_index('ix_expenses_date', table_name='expenses')
    op.drop_table('expenses')

    op.drop_index('ix_purchases_purchase_date', table_name='purchases')
    op.drop_index('ix_purchases_product_id', table_name='purchases')
    op.drop_table('purchases')

    op.drop_index('ix_orders_product_date', table_name='orders')
    op.drop_index('ix_orders_order_date', table_name='orders')
    op.drop_index('ix_orders_product_id', table_name='orders')
    op.drop_table('orders')

    op.drop_index('ix_products_category_name', table_name='products')
    op.drop_index('ix_products_category_id', table_name='products')
    op.drop_table('products')

    op.drop_table('categories')
