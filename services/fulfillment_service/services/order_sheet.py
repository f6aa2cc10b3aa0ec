"""Printable order-details sheet for the production floor."""

import uuid
from typing import Optional, Sequence

from libs.common.datetime_utils import epoch_millis
from libs.common.exceptions import NotFoundError, ValidationError
from libs.common.logging import get_logger
from libs.common.pdf import generate_order_details_pdf
from services.fulfillment_service.models import Order
from services.fulfillment_service.services._helpers import (
    NOT_REQUESTED_MARKER,
    PERSONALIZATION_VARIATION,
    design_files_of,
    line_items_of,
)
from services.fulfillment_service.services.document_assembler import (
    AssembledDocument,
    fetch_production_orders,
)
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def _ship_to(order: Order) -> list[str]:
    if not order.shipping_address_line1:
        return ["No address"]
    city_line = ", ".join(
        part for part in (order.shipping_city, order.shipping_state) if part
    )
    if order.shipping_zip:
        city_line = f"{city_line} {order.shipping_zip}".strip()
    return [
        line
        for line in (
            order.customer_name,
            order.shipping_address_line1,
            order.shipping_address_line2,
            city_line,
            order.shipping_country,
        )
        if line
    ]


def _item_entry(order: Order, item, design_files) -> dict:
    personalization = ""
    other = []
    for variation in item.variations or []:
        if variation.name.strip().lower() == PERSONALIZATION_VARIATION:
            personalization = (variation.value or "").strip()
        else:
            other.append(f"{variation.name}: {variation.value or ''}")

    notes = []
    if personalization and NOT_REQUESTED_MARKER not in personalization.lower():
        notes.append(f"Buyer: {personalization}")
    if order.notes:
        notes.append(f"Internal: {order.notes}")

    design_file = next(
        (df for df in design_files if df.line_item_id == item.line_item_id), None
    )
    design_name = None
    if design_file and (design_file.file_path or design_file.file_url):
        design_name = design_file.file_name or "design.pdf"

    return {
        "title": item.title,
        "sku": item.sku,
        "quantity": item.quantity,
        "variations": ", ".join(other),
        "notes": notes,
        "design_file": design_name,
    }


def build_sheet_entries(
    orders: Sequence[Order], sku: Optional[str], all_skus: bool = False
) -> list[dict]:
    """One entry per order that has at least one matching line item."""
    entries = []
    for order in orders:
        design_files = design_files_of(order)
        items = [
            _item_entry(order, item, design_files)
            for item in line_items_of(order)
            if item.sku and (all_skus or item.sku == sku)
        ]
        if not items:
            continue
        entries.append(
            {
                "order_number": order.order_number,
                "order_date": order.order_date.strftime("%Y-%m-%d")
                if order.order_date
                else None,
                "store_name": order.store_name,
                "customer_name": order.customer_name,
                "customer_email": order.customer_email,
                "ship_to": _ship_to(order),
                "items": items,
            }
        )
    return entries


async def render_order_details(
    db: AsyncSession,
    sku: Optional[str],
    order_ids: Optional[Sequence[uuid.UUID]] = None,
    all_skus: bool = False,
) -> AssembledDocument:
    """Render one page per production order carrying ``sku`` (or any SKU)."""
    sku = (sku or "").strip() or None
    if not sku and not all_skus:
        raise ValidationError("SKU parameter is required")

    orders = await fetch_production_orders(db, order_ids)
    entries = build_sheet_entries(orders, sku, all_skus)
    if not entries:
        message = "No orders found" if all_skus else f"No orders found for SKU: {sku}"
        raise NotFoundError(
            message, {"message": "Make sure the SKU exists in the production queue"}
        )

    label = "all" if all_skus else sku
    content = generate_order_details_pdf(entries, title=f"Order Details - {label}")
    logger.info("Rendered order details for %d order(s) (%s)", len(entries), label)
    return AssembledDocument(
        content=content,
        filename=f"{label}_order_details_{epoch_millis()}.pdf",
        page_count=len(entries),
        files_merged=0,
        files_skipped=0,
    )
