"""Pydantic schemas for fulfillment service."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from services.fulfillment_service.models import OrderStatus

# ============================================================================
# ORDER DETAIL PAYLOAD
# ============================================================================


class Variation(BaseModel):
    """Buyer-selected option or personalization text on a line item."""

    name: str
    value: Optional[str] = None


class LineItem(BaseModel):
    line_item_id: Optional[str] = None
    sku: Optional[str] = None
    quantity: int = 1
    title: Optional[str] = None
    # None when the marketplace sent no variations at all
    variations: Optional[list[Variation]] = None

    @field_validator("line_item_id", mode="before")
    @classmethod
    def coerce_line_item_id(cls, v):
        # Marketplaces send numeric transaction ids
        return str(v) if v is not None else None


class OrderDetail(BaseModel):
    line_items: list[LineItem] = []


class DesignFile(BaseModel):
    line_item_id: Optional[str] = None
    file_path: Optional[str] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None

    @field_validator("line_item_id", mode="before")
    @classmethod
    def coerce_line_item_id(cls, v):
        return str(v) if v is not None else None


class EnrichedLineItem(LineItem):
    """Line item joined with its ProductTemplate; fields are null when unmatched."""

    default_length_inches: Optional[float] = None
    default_width_inches: Optional[float] = None
    default_height_inches: Optional[float] = None
    default_weight_oz: Optional[float] = None
    canva_template_url: Optional[str] = None


class EnrichedOrderDetail(BaseModel):
    line_items: list[EnrichedLineItem] = []


# ============================================================================
# ORDER SCHEMAS
# ============================================================================


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    store_id: Optional[uuid.UUID] = None
    store_name: Optional[str] = None
    status: OrderStatus

    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    shipping_address_line1: Optional[str] = None
    shipping_address_line2: Optional[str] = None
    shipping_city: Optional[str] = None
    shipping_state: Optional[str] = None
    shipping_zip: Optional[str] = None
    shipping_country: Optional[str] = None

    product_sku: Optional[str] = None
    product_name: Optional[str] = None

    needs_design_revision: bool = False
    design_revision_notes: Optional[str] = None
    review_reason: Optional[str] = None
    notes: Optional[str] = None

    order_detail: OrderDetail = OrderDetail()
    design_files: list[DesignFile] = []

    tracking_number: Optional[str] = None
    label_url: Optional[str] = None
    carrier: Optional[str] = None

    order_date: datetime
    production_started_at: Optional[datetime] = None
    loaded_for_shipment_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("order_detail", mode="before")
    @classmethod
    def default_order_detail(cls, v):
        return v if v is not None else {}

    @field_validator("design_files", mode="before")
    @classmethod
    def default_design_files(cls, v):
        return v if v is not None else []


class EnrichedOrderResponse(OrderResponse):
    order_detail: EnrichedOrderDetail = EnrichedOrderDetail()


class QueueResponse(BaseModel):
    """Prioritized, paginated worklist."""

    orders: list[EnrichedOrderResponse]
    total: int
    limit: int
    offset: int


class OrderStatusUpdate(BaseModel):
    """Manual status change; the value is checked against OrderStatus by the service."""

    status: str = Field(..., min_length=1)
    review_reason: Optional[str] = None


class RevisionRequest(BaseModel):
    revision_notes: Optional[str] = None


class LoadForShipmentRequest(BaseModel):
    tracking_number: str = Field(..., min_length=1)


# ============================================================================
# INTAKE
# ============================================================================


class PersonalizationEntry(BaseModel):
    line_item_id: str
    text: str = ""

    @field_validator("line_item_id", mode="before")
    @classmethod
    def coerce_line_item_id(cls, v):
        return str(v) if v is not None else v


class PersonalizationSubmission(BaseModel):
    items: list[PersonalizationEntry] = []
    notes: Optional[str] = None


class DesignUploadResponse(BaseModel):
    file_url: str
    all_complete: bool
    order: EnrichedOrderResponse


# ============================================================================
# AUTO-ADVANCE
# ============================================================================


class StatusChange(BaseModel):
    order_id: uuid.UUID
    sku: str
    old_status: OrderStatus
    new_status: OrderStatus
    reason: str


class AutoAdvanceResult(BaseModel):
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    total_checked: int = 0
    updates: list[StatusChange] = []


# ============================================================================
# DELETION
# ============================================================================


class BulkDeleteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_ids: list[uuid.UUID] = Field(..., alias="orderIds")


class BulkDeleteResult(BaseModel):
    deleted: int
    files_deleted: int
    stores_reset: int


class ClearAllRequest(BaseModel):
    confirm: Optional[str] = None


class ClearAllResult(BaseModel):
    deleted_count: int
    files_deleted: int
    stores_reset: int


# ============================================================================
# REPORTING
# ============================================================================


class StatusCount(BaseModel):
    status: str  # Human-readable label
    status_key: OrderStatus
    count: int


class DashboardStats(BaseModel):
    chart_data: list[StatusCount]
    total: int


class UnconfiguredSku(BaseModel):
    sku: str
    product_name: str = ""


class UnconfiguredSkuList(BaseModel):
    unconfigured_skus: list[UnconfiguredSku]
    count: int
