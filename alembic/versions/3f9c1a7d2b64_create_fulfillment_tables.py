"""create_fulfillment_tables

Revision ID: 3f9c1a7d2b64
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID


# revision identifiers, used by Alembic.
revision: str = '3f9c1a7d2b64'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ORDER_STATUSES = (
    'pending_enrichment',
    'needs_review',
    'ready_for_design',
    'design_complete',
    'in_production',
    'labels_generated',
    'loaded_for_shipment',
    'pending_fulfillment',
    'in_transit',
    'delivered',
)


def upgrade() -> None:
    """Upgrade schema - Create stores, product_templates and orders."""

    # Create stores table
    op.create_table(
        'stores',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('store_name', sa.String(length=255), nullable=False),
        sa.Column('platform', sa.Enum('etsy', 'shopify', name='store_platform_enum'), nullable=False),
        sa.Column('shop_domain', sa.String(length=255), nullable=True),
        sa.Column('external_shop_id', sa.String(length=100), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('last_sync_timestamp', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    # Create product_templates table
    op.create_table(
        'product_templates',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('sku', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=True),
        sa.Column(
            'personalization_type',
            sa.Enum('none', 'notes', 'full', name='personalization_type_enum'),
            server_default='full',
            nullable=False,
        ),
        sa.Column('default_length_inches', sa.Float(), nullable=True),
        sa.Column('default_width_inches', sa.Float(), nullable=True),
        sa.Column('default_height_inches', sa.Float(), nullable=True),
        sa.Column('default_weight_oz', sa.Float(), nullable=True),
        sa.Column('canva_template_url', sa.Text(), nullable=True),
        sa.Column('sla_business_days', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_product_templates_sku', 'product_templates', ['sku'], unique=True)

    # Create orders table
    op.create_table(
        'orders',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('order_number', sa.String(length=50), nullable=False),
        sa.Column('store_id', UUID(as_uuid=True), nullable=True),
        sa.Column('external_order_id', sa.String(length=100), nullable=True),
        sa.Column('customer_name', sa.String(length=255), nullable=True),
        sa.Column('customer_email', sa.String(length=255), nullable=True),
        sa.Column('shipping_address_line1', sa.String(length=255), nullable=True),
        sa.Column('shipping_address_line2', sa.String(length=255), nullable=True),
        sa.Column('shipping_city', sa.String(length=100), nullable=True),
        sa.Column('shipping_state', sa.String(length=100), nullable=True),
        sa.Column('shipping_zip', sa.String(length=20), nullable=True),
        sa.Column('shipping_country', sa.String(length=2), nullable=True),
        sa.Column('product_sku', sa.String(length=100), nullable=True),
        sa.Column('product_name', sa.String(length=500), nullable=True),
        sa.Column(
            'status',
            sa.Enum(*ORDER_STATUSES, name='order_status_enum'),
            server_default='pending_enrichment',
            nullable=False,
        ),
        sa.Column('needs_design_revision', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('design_revision_notes', sa.Text(), nullable=True),
        sa.Column('review_reason', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('order_detail', JSONB(), nullable=True),
        sa.Column('design_files', JSONB(), nullable=True),
        sa.Column('tracking_number', sa.String(length=100), nullable=True),
        sa.Column('label_url', sa.Text(), nullable=True),
        sa.Column('carrier', sa.String(length=50), nullable=True),
        sa.Column('order_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('production_started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('loaded_for_shipment_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_orders_order_number', 'orders', ['order_number'], unique=True)
    op.create_index('ix_orders_store_id', 'orders', ['store_id'], unique=False)
    op.create_index('ix_orders_product_sku', 'orders', ['product_sku'], unique=False)
    op.create_index('ix_orders_status', 'orders', ['status'], unique=False)
    op.create_index('ix_orders_tracking_number', 'orders', ['tracking_number'], unique=False)
    op.create_index('ix_orders_status_order_date', 'orders', ['status', 'order_date'], unique=False)


def downgrade() -> None:
    """Downgrade schema - Drop fulfillment tables."""
    op.drop_index('ix_orders_status_order_date', table_name='orders')
    op.drop_index('ix_orders_tracking_number', table_name='orders')
    op.drop_index('ix_orders_status', table_name='orders')
    op.drop_index('ix_orders_product_sku', table_name='orders')
    op.drop_index('ix_orders_store_id', table_name='orders')
    op.drop_index('ix_orders_order_number', table_name='orders')
    op.drop_table('orders')
    op.drop_index('ix_product_templates_sku', table_name='product_templates')
    op.drop_table('product_templates')
    op.drop_table('stores')

    sa.Enum(name='order_status_enum').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='personalization_type_enum').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='store_platform_enum').drop(op.get_bind(), checkfirst=True)
