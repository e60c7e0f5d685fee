"""create_commerce_tables

Revision ID: c0a1f3e9d2b7
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'c0a1f3e9d2b7'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

movement_type_enum = postgresql.ENUM(
    'reservation', 'release', 'adjustment',
    name='commerce_inventory_movement_type_enum', create_type=False,
)
payment_method_enum = postgresql.ENUM(
    'COD', 'RAZORPAY', name='commerce_payment_method_enum', create_type=False,
)
payment_status_enum = postgresql.ENUM(
    'PENDING', 'PAID', 'FAILED', 'REFUNDED',
    name='commerce_payment_status_enum', create_type=False,
)
order_status_enum = postgresql.ENUM(
    'PENDING', 'CONFIRMED', 'PROCESSING', 'SHIPPED', 'OUT_FOR_DELIVERY',
    'DELIVERED', 'CANCELLED',
    name='commerce_order_status_enum', create_type=False,
)
order_event_enum = postgresql.ENUM(
    'placed', 'cancelled', 'status_update', 'payment_captured',
    'payment_failed', 'gateway_order_paid',
    name='commerce_order_event_enum', create_type=False,
)
ENUMS = (
    movement_type_enum,
    payment_method_enum,
    payment_status_enum,
    order_status_enum,
    order_event_enum,
)


def upgrade() -> None:
    """Upgrade schema - Add commerce tables."""
    bind = op.get_bind()
    for enum_type in ENUMS:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        'commerce_products',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('product_code', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('stock_quantity', sa.Integer(), server_default='0', nullable=False),
        sa.Column('in_stock', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('low_stock_threshold', sa.Integer(), server_default='5', nullable=False),
        sa.Column('colour_options', postgresql.JSONB(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('price >= 0', name='product_price_non_negative'),
        sa.CheckConstraint('stock_quantity >= 0', name='product_stock_non_negative'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_commerce_products_product_code', 'commerce_products', ['product_code'], unique=True)
    op.create_index('ix_commerce_products_category', 'commerce_products', ['category'])

    op.create_table(
        'commerce_product_images',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('url', sa.String(length=1024), nullable=False),
        sa.Column('storage_handle', sa.String(length=255), nullable=False),
        sa.Column('sort_order', sa.Integer(), server_default='0', nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['product_id'], ['commerce_products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'commerce_product_reviews',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('author_label', sa.String(length=255), nullable=False),
        sa.Column('principal_id', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('rating >= 1 AND rating <= 5', name='review_rating_range'),
        sa.ForeignKeyConstraint(['product_id'], ['commerce_products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'commerce_inventory_movements',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('movement_type', movement_type_enum, nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('quantity_after', sa.Integer(), nullable=False),
        sa.Column('reference_type', sa.String(length=50), nullable=True),
        sa.Column('reference_id', sa.String(length=64), nullable=True),
        sa.Column('actor', sa.String(length=255), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['product_id'], ['commerce_products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_commerce_inventory_movements_product_id', 'commerce_inventory_movements', ['product_id'])

    op.create_table(
        'commerce_carts',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('principal_id', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_commerce_carts_principal_id', 'commerce_carts', ['principal_id'], unique=True)

    op.create_table(
        'commerce_cart_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('cart_id', sa.Uuid(), nullable=False),
        sa.Column('product_code', sa.String(length=32), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('colour', sa.String(length=50), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('quantity > 0', name='cart_item_positive_quantity'),
        sa.ForeignKeyConstraint(['cart_id'], ['commerce_carts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('cart_id', 'product_code', name='unique_cart_product'),
    )

    op.create_table(
        'commerce_orders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_number', sa.String(length=32), nullable=False),
        sa.Column('principal_id', sa.String(length=255), nullable=False),
        sa.Column('subtotal', sa.Numeric(12, 2), nullable=False),
        sa.Column('tax', sa.Numeric(12, 2), nullable=False),
        sa.Column('shipping', sa.Numeric(12, 2), nullable=False),
        sa.Column('total', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sa.String(length=3), server_default='INR', nullable=True),
        sa.Column('shipping_address', postgresql.JSONB(), nullable=False),
        sa.Column('payment_method', payment_method_enum, nullable=False),
        sa.Column('payment_status', payment_status_enum, nullable=False),
        sa.Column('order_status', order_status_enum, nullable=False),
        sa.Column('gateway_order_id', sa.String(length=64), nullable=True),
        sa.Column('gateway_payment_id', sa.String(length=64), nullable=True),
        sa.Column('gateway_signature', sa.String(length=128), nullable=True),
        sa.Column('payment_verified', sa.Boolean(), server_default='false', nullable=True),
        sa.Column('amount_paid', sa.Numeric(12, 2), nullable=True),
        sa.Column('gateway_payment_method', sa.String(length=50), nullable=True),
        sa.Column('settled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('tracking_number', sa.String(length=100), nullable=True),
        sa.Column('courier_service', sa.String(length=100), nullable=True),
        sa.Column('estimated_delivery', sa.DateTime(timezone=True), nullable=True),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('cancelled_by', sa.String(length=255), nullable=True),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('shipped_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('total >= 0', name='order_total_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('gateway_payment_id'),
    )
    op.create_index('ix_commerce_orders_order_number', 'commerce_orders', ['order_number'], unique=True)
    op.create_index('ix_commerce_orders_principal_id', 'commerce_orders', ['principal_id'])
    op.create_index('ix_commerce_orders_order_status', 'commerce_orders', ['order_status'])
    op.create_index('ix_commerce_orders_gateway_order_id', 'commerce_orders', ['gateway_order_id'])
    op.create_index('ix_commerce_orders_principal_created', 'commerce_orders', ['principal_id', 'created_at'])

    op.create_table(
        'commerce_order_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('product_code', sa.String(length=32), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('line_subtotal', sa.Numeric(12, 2), nullable=False),
        sa.Column('colour', sa.String(length=50), nullable=True),
        sa.Column('images', postgresql.JSONB(), nullable=True),
        sa.CheckConstraint('quantity > 0', name='order_item_positive_quantity'),
        sa.ForeignKeyConstraint(['order_id'], ['commerce_orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'commerce_order_status_history',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('status', order_status_enum, nullable=False),
        sa.Column('event', order_event_enum, nullable=False),
        sa.Column('actor', sa.String(length=255), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['order_id'], ['commerce_orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id', 'sequence', name='unique_order_history_sequence'),
    )

    op.create_table(
        'commerce_delivery_zones',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('pincode', sa.String(length=6), nullable=False),
        sa.Column('area', sa.String(length=255), nullable=False),
        sa.Column('city', sa.String(length=100), nullable=False),
        sa.Column('state', sa.String(length=100), nullable=False),
        sa.Column('cod_available', sa.Boolean(), server_default='true', nullable=True),
        sa.Column('delivery_charge', sa.Numeric(12, 2), server_default='0', nullable=True),
        sa.Column('estimated_delivery_days', sa.Integer(), server_default='3', nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=True),
        sa.Column('added_by', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('delivery_charge >= 0', name='zone_charge_non_negative'),
        sa.CheckConstraint('estimated_delivery_days >= 1', name='zone_lead_days_min'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_commerce_delivery_zones_pincode', 'commerce_delivery_zones', ['pincode'], unique=True)
    op.create_index('ix_commerce_delivery_zones_is_active', 'commerce_delivery_zones', ['is_active'])


def downgrade() -> None:
    """Downgrade schema - Drop commerce tables."""
    op.drop_table('commerce_delivery_zones')
    op.drop_table('commerce_order_status_history')
    op.drop_table('commerce_order_items')
    op.drop_table('commerce_orders')
    op.drop_table('commerce_cart_items')
    op.drop_table('commerce_carts')
    op.drop_table('commerce_inventory_movements')
    op.drop_table('commerce_product_reviews')
    op.drop_table('commerce_product_images')
    op.drop_table('commerce_products')

    bind = op.get_bind()
    for enum_type in reversed(ENUMS):
        enum_type.drop(bind, checkfirst=True)
