"""initial inventory schema

Revision ID: b7c1d2e3f4a5
Revises:
Create Date: 2026-10-18 00:00:00.000000

Creates the local store:
- products: product master keyed by string id, unique sku and internal_code
- sales: finalized sales (immutable)
- sale_items: the ordered lines embedded in each sale
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
    # products
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('seq', sa.Integer(), nullable=False),
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('internal_code', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        # Money is stored as exact decimal text
        sa.Column('cost_price', sa.String(length=64), nullable=False),
        sa.Column('sale_price', sa.String(length=64), nullable=False),
        sa.Column('expiry_date', sa.Date(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('image', sa.Text(), nullable=True),
        # Epoch milliseconds, same as the backup document
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.Column('updated_at', sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint('seq'),
        sa.UniqueConstraint('sku', name='uq_products_sku'),
        sa.UniqueConstraint('internal_code', name='uq_products_internal_code'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_id', 'products', ['id'], unique=True)
    op.create_index('ix_products_created_at', 'products', ['created_at'])

    # ============================================================================
    # sales
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('seq', sa.Integer(), nullable=False),
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('subtotal', sa.String(length=64), nullable=False),
        sa.Column('discount', sa.String(length=64), nullable=False),
        sa.Column('discount_type', sa.String(length=16), nullable=False),
        sa.Column('total', sa.String(length=64), nullable=False),
        sa.Column('cost_of_goods_sold', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint('seq'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_id', 'sales', ['id'], unique=True)
    op.create_index('ix_sales_created_at', 'sales', ['created_at'])

    # ============================================================================
    # sale_items: product_id is a weak reference (no FK to products)
    # ============================================================================
    op.create_table(
        'sale_items',
        sa.Column('seq', sa.Integer(), nullable=False),
        sa.Column('sale_seq', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.String(length=64), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('sale_price', sa.String(length=64), nullable=False),
        sa.Column('cost_price', sa.String(length=64), nullable=False),
        sa.ForeignKeyConstraint(['sale_seq'], ['sales.seq'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('seq'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sale_items_sale_seq', 'sale_items', ['sale_seq'])
    op.create_index('ix_sale_items_product_id', 'sale_items', ['product_id'])
    op.create_index('ix_sale_items_sale_position', 'sale_items', ['sale_seq', 'position'])


def downgrade():
    op.drop_table('sale_items')
    op.drop_table('sales')
    op.drop_table('products')
