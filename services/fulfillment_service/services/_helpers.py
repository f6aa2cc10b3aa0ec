"""Typed access to the JSON payloads stored on an Order."""

from typing import Optional

from services.fulfillment_service.models import Order
from services.fulfillment_service.schemas import DesignFile, LineItem, OrderDetail

PERSONALIZATION_VARIATION = "personalization"
NOT_REQUESTED_MARKER = "not requested"


def line_items_of(order: Order) -> list[LineItem]:
    return OrderDetail.model_validate(order.order_detail or {}).line_items


def design_files_of(order: Order) -> list[DesignFile]:
    return [DesignFile.model_validate(item) for item in order.design_files or []]


def primary_sku(order: Order) -> Optional[str]:
    """The order's SKU: the denormalized column, else the first line item's."""
    if order.product_sku:
        return order.product_sku
    for item in line_items_of(order):
        if item.sku:
            return item.sku
    return None


def personalization_values(line_items: list[LineItem]) -> list[str]:
    """Values of every variation named "Personalization", stripped."""
    values = []
    for item in line_items:
        for variation in item.variations or []:
            if variation.name.strip().lower() == PERSONALIZATION_VARIATION:
                values.append((variation.value or "").strip())
    return values


def has_requested_personalization(line_items: list[LineItem]) -> bool:
    """True when the buyer actually supplied personalization text."""
    return any(
        value and NOT_REQUESTED_MARKER not in value.lower()
        for value in personalization_values(line_items)
    )
