"""Fulfillment service models.

Domain entities:
- Store: marketplace source with its sync checkpoint
- ProductTemplate: per-SKU production metadata
- Order: imported marketplace order moving through the fulfillment workflow
"""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.fulfillment_service.models.enums import (
    OrderStatus,
    PersonalizationType,
    StorePlatform,
    enum_values,
)
from sqlalchemy import JSON, Boolean, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Float, ForeignKey, Index, Integer, String, Text, Uuid, inspect
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite under test)
JSONType = JSON().with_variant(JSONB(), "postgresql")


# ============================================================================
# STORES
# ============================================================================


class Store(Base):
    """Marketplace store that orders are imported from."""

    __tablename__ = "stores"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    store_name: Mapped[str] = mapped_column(String(255), nullable=False)
    platform: Mapped[StorePlatform] = mapped_column(
        SAEnum(StorePlatform, values_callable=enum_values, name="store_platform_enum"),
        default=StorePlatform.ETSY,
    )
    shop_domain: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    external_shop_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")

    # Sync checkpoint; NULL forces a full re-import on the next sync
    last_sync_timestamp: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    orders = relationship("Order", back_populates="store")

    def __repr__(self):
        return f"<Store {self.store_name} ({self.platform.value})>"


# ============================================================================
# PRODUCT TEMPLATES
# ============================================================================


class ProductTemplate(Base):
    """Production metadata for one (size-expanded) SKU."""

    __tablename__ = "product_templates"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    sku: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    personalization_type: Mapped[PersonalizationType] = mapped_column(
        SAEnum(
            PersonalizationType,
            values_callable=enum_values,
            name="personalization_type_enum",
        ),
        default=PersonalizationType.FULL,
        server_default="full",
    )

    # Shipping defaults
    default_length_inches: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    default_width_inches: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    default_height_inches: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    default_weight_oz: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    canva_template_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sla_business_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    def __repr__(self):
        return f"<ProductTemplate {self.sku}>"


# ============================================================================
# ORDERS
# ============================================================================


class Order(Base):
    """Imported order and its fulfillment state."""

    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_status_order_date", "status", "order_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False, index=True
    )
    store_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("stores.id", ondelete="SET NULL"), nullable=True, index=True
    )
    external_order_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Customer
    customer_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    customer_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Shipping address
    shipping_address_line1: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    shipping_address_line2: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    shipping_city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    shipping_state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    shipping_zip: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    shipping_country: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)

    # Primary line item, denormalized for search and SKU reports
    product_sku: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    product_name: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Workflow
    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(OrderStatus, values_callable=enum_values, name="order_status_enum"),
        default=OrderStatus.PENDING_ENRICHMENT,
        server_default="pending_enrichment",
        index=True,
    )
    needs_design_revision: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false"
    )
    design_revision_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    review_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # {"line_items": [{"line_item_id", "sku", "quantity", "title", "variations"}]}
    order_detail: Mapped[dict] = mapped_column(JSONType, default=dict)
    # [{"line_item_id", "file_path", "file_url", "file_name"}]
    design_files: Mapped[list] = mapped_column(JSONType, default=list)

    # Shipping
    tracking_number: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True, index=True
    )
    label_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    carrier: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Lifecycle timestamps
    order_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    production_started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    loaded_for_shipment_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    store = relationship("Store", back_populates="orders")

    @property
    def store_name(self) -> Optional[str]:
        """Store name when the store relationship was eagerly loaded."""
        if "store" in inspect(self).unloaded:
            return None
        return self.store.store_name if self.store else None

    def __repr__(self):
        return f"<Order {self.order_number} {self.status.value}>"
