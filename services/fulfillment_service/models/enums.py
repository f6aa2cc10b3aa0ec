"""Enum definitions for fulfillment service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class OrderStatus(str, enum.Enum):
    PENDING_ENRICHMENT = "pending_enrichment"
    NEEDS_REVIEW = "needs_review"
    READY_FOR_DESIGN = "ready_for_design"
    DESIGN_COMPLETE = "design_complete"
    IN_PRODUCTION = "in_production"
    LABELS_GENERATED = "labels_generated"
    LOADED_FOR_SHIPMENT = "loaded_for_shipment"
    PENDING_FULFILLMENT = "pending_fulfillment"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]


STATUS_LABELS = {
    OrderStatus.PENDING_ENRICHMENT: "Pending Enrichment",
    OrderStatus.NEEDS_REVIEW: "Needs Review",
    OrderStatus.READY_FOR_DESIGN: "Ready for Design",
    OrderStatus.DESIGN_COMPLETE: "Design Complete",
    OrderStatus.IN_PRODUCTION: "In Production",
    OrderStatus.LABELS_GENERATED: "Labels Generated",
    OrderStatus.LOADED_FOR_SHIPMENT: "Loaded for Shipment",
    OrderStatus.PENDING_FULFILLMENT: "Pending Fulfillment",
    OrderStatus.IN_TRANSIT: "In Transit",
    OrderStatus.DELIVERED: "Delivered",
}

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED})

# Workflow edges. needs_review may be re-entered from any non-terminal state.
ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING_ENRICHMENT: frozenset(
        {OrderStatus.NEEDS_REVIEW, OrderStatus.READY_FOR_DESIGN}
    ),
    OrderStatus.NEEDS_REVIEW: frozenset({OrderStatus.READY_FOR_DESIGN}),
    OrderStatus.READY_FOR_DESIGN: frozenset(
        {OrderStatus.DESIGN_COMPLETE, OrderStatus.NEEDS_REVIEW}
    ),
    OrderStatus.DESIGN_COMPLETE: frozenset(
        {
            OrderStatus.IN_PRODUCTION,
            OrderStatus.READY_FOR_DESIGN,
            OrderStatus.NEEDS_REVIEW,
        }
    ),
    OrderStatus.IN_PRODUCTION: frozenset(
        {
            OrderStatus.LABELS_GENERATED,
            OrderStatus.READY_FOR_DESIGN,
            OrderStatus.NEEDS_REVIEW,
        }
    ),
    OrderStatus.LABELS_GENERATED: frozenset(
        {OrderStatus.LOADED_FOR_SHIPMENT, OrderStatus.NEEDS_REVIEW}
    ),
    OrderStatus.LOADED_FOR_SHIPMENT: frozenset(
        {OrderStatus.PENDING_FULFILLMENT, OrderStatus.NEEDS_REVIEW}
    ),
    OrderStatus.PENDING_FULFILLMENT: frozenset(
        {OrderStatus.IN_TRANSIT, OrderStatus.NEEDS_REVIEW}
    ),
    OrderStatus.IN_TRANSIT: frozenset(
        {OrderStatus.DELIVERED, OrderStatus.NEEDS_REVIEW}
    ),
    OrderStatus.DELIVERED: frozenset(),
}


def is_workflow_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """True when ``current -> target`` is an edge of the fulfillment workflow."""
    return target in ALLOWED_TRANSITIONS[current]


class PersonalizationType(str, enum.Enum):
    NONE = "none"
    NOTES = "notes"
    FULL = "full"


class StorePlatform(str, enum.Enum):
    ETSY = "etsy"
    SHOPIFY = "shopify"
