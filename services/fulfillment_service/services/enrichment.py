"""Attach ProductTemplate metadata to order line items by SKU."""

import asyncio
from typing import Iterable, Sequence

from libs.common.config import get_settings
from libs.common.exceptions import UpstreamError
from libs.common.logging import get_logger
from services.fulfillment_service.models import Order, ProductTemplate
from services.fulfillment_service.schemas import (
    EnrichedLineItem,
    EnrichedOrderDetail,
    EnrichedOrderResponse,
    OrderResponse,
)
from services.fulfillment_service.services._helpers import line_items_of
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def collect_skus(orders: Iterable[Order]) -> set[str]:
    """Distinct non-empty SKUs across every line item of every order."""
    skus: set[str] = set()
    for order in orders:
        for item in line_items_of(order):
            if item.sku:
                skus.add(item.sku)
        if order.product_sku:
            skus.add(order.product_sku)
    return skus


async def fetch_templates_by_sku(
    db: AsyncSession, skus: Iterable[str]
) -> dict[str, ProductTemplate]:
    """One batched lookup for the whole SKU set."""
    sku_list = sorted(set(skus))
    if not sku_list:
        return {}

    timeout = get_settings().TEMPLATE_LOOKUP_TIMEOUT_SECONDS
    try:
        result = await asyncio.wait_for(
            db.execute(select(ProductTemplate).where(ProductTemplate.sku.in_(sku_list))),
            timeout=timeout,
        )
    except asyncio.TimeoutError as exc:
        raise UpstreamError(
            "Product template lookup timed out",
            {"sku_count": len(sku_list), "timeout_seconds": timeout},
        ) from exc

    return {template.sku: template for template in result.scalars().all()}


def _enrich_line_item(item, template) -> EnrichedLineItem:
    enriched = EnrichedLineItem(**item.model_dump())
    if template is not None:
        enriched.default_length_inches = template.default_length_inches
        enriched.default_width_inches = template.default_width_inches
        enriched.default_height_inches = template.default_height_inches
        enriched.default_weight_oz = template.default_weight_oz
        enriched.canva_template_url = template.canva_template_url
    return enriched


def apply_templates(
    order: Order, templates: dict[str, ProductTemplate]
) -> EnrichedOrderResponse:
    """Copy of ``order`` whose line items carry their template's metadata."""
    base = OrderResponse.model_validate(order)
    line_items = [
        _enrich_line_item(item, templates.get(item.sku) if item.sku else None)
        for item in base.order_detail.line_items
    ]
    data = base.model_dump(exclude={"order_detail"})
    return EnrichedOrderResponse(
        **data, order_detail=EnrichedOrderDetail(line_items=line_items)
    )


async def enrich_orders(
    db: AsyncSession, orders: Sequence[Order]
) -> list[EnrichedOrderResponse]:
    """
    Enrich every order with product template data.

    Unmatched SKUs never raise; their line items keep null metadata.
    """
    templates = await fetch_templates_by_sku(db, collect_skus(orders))
    logger.debug(
        "Enriching %d order(s) with %d matched template(s)", len(orders), len(templates)
    )
    return [apply_templates(order, templates) for order in orders]
