"""Fulfillment service models package."""

from services.fulfillment_service.models.core import Order, ProductTemplate, Store
from services.fulfillment_service.models.enums import (
    ALLOWED_TRANSITIONS,
    STATUS_LABELS,
    OrderStatus,
    PersonalizationType,
    StorePlatform,
    is_workflow_transition,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "Order",
    "OrderStatus",
    "PersonalizationType",
    "ProductTemplate",
    "STATUS_LABELS",
    "Store",
    "StorePlatform",
    "is_workflow_transition",
]
