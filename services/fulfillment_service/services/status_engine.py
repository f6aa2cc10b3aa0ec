"""Order status transitions: manual changes, production hand-off, auto-advance.

Mutations are last-write-wins; there is no version column on orders.
"""

import uuid
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.common.exceptions import NotFoundError, ValidationError
from libs.common.logging import get_logger
from services.fulfillment_service.models import (
    Order,
    OrderStatus,
    PersonalizationType,
    is_workflow_transition,
)
from services.fulfillment_service.schemas import AutoAdvanceResult, StatusChange
from services.fulfillment_service.services._helpers import (
    has_requested_personalization,
    line_items_of,
    primary_sku,
)
from services.fulfillment_service.services.enrichment import fetch_templates_by_sku
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


def parse_status(value) -> OrderStatus:
    """Coerce ``value`` to OrderStatus or raise ValidationError."""
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError(
            "Invalid status",
            {"status": value, "allowed": [s.value for s in OrderStatus]},
        ) from None


async def get_order_or_404(db: AsyncSession, order_id: uuid.UUID) -> Order:
    order = await db.get(
        Order,
        order_id,
        options=[selectinload(Order.store)],
        populate_existing=True,
    )
    if not order:
        raise NotFoundError("Order not found", {"order_id": str(order_id)})
    return order


async def save_order(db: AsyncSession, order: Order) -> Order:
    """Commit pending changes and reload ``order`` together with its store."""
    await db.commit()
    await db.refresh(order)
    await db.refresh(order, attribute_names=["store"])
    return order


# ---------------------------------------------------------------------------
# Manual transitions
# ---------------------------------------------------------------------------


async def set_status(
    db: AsyncSession,
    order_id: uuid.UUID,
    new_status,
    reason: Optional[str] = None,
) -> Order:
    """Operator status change.

    Any enumerated status is accepted; moves outside the workflow table are
    logged as overrides. ``review_reason`` is kept only for needs_review.
    """
    target = parse_status(new_status)
    order = await get_order_or_404(db, order_id)
    previous = order.status

    if target == OrderStatus.LOADED_FOR_SHIPMENT and not order.label_url:
        raise ValidationError(
            "Order cannot be loaded for shipment without a shipping label",
            {"order_id": str(order_id)},
        )

    if previous != target and not is_workflow_transition(previous, target):
        logger.warning(
            "Status override on order %s: %s -> %s",
            order.order_number,
            previous.value,
            target.value,
        )

    order.status = target
    order.review_reason = reason if target == OrderStatus.NEEDS_REVIEW else None

    # A pending revision only makes sense while the order sits in the design queue
    if target != OrderStatus.READY_FOR_DESIGN:
        order.needs_design_revision = False
    if target == OrderStatus.LOADED_FOR_SHIPMENT:
        order.loaded_for_shipment_at = utc_now()

    await save_order(db, order)

    logger.info(
        "Order %s status %s -> %s", order.order_number, previous.value, target.value
    )
    return order


async def start_production(db: AsyncSession, order_id: uuid.UUID) -> Order:
    """Hand an order to the production floor."""
    order = await get_order_or_404(db, order_id)

    order.status = OrderStatus.IN_PRODUCTION
    order.production_started_at = utc_now()
    order.needs_design_revision = False
    order.design_revision_notes = None
    order.review_reason = None

    await save_order(db, order)

    logger.info("Production started for order %s", order.order_number)
    return order


async def request_revision(
    db: AsyncSession, order_id: uuid.UUID, notes: Optional[str]
) -> Order:
    """Send an order back to the design queue with revision notes."""
    order = await get_order_or_404(db, order_id)

    order.status = OrderStatus.READY_FOR_DESIGN
    order.needs_design_revision = True
    order.design_revision_notes = notes or None
    order.production_started_at = None
    order.review_reason = None

    await save_order(db, order)

    logger.info("Design revision requested for order %s", order.order_number)
    return order


async def load_for_shipment(db: AsyncSession, tracking_number: str) -> Order:
    """Mark the order carrying ``tracking_number`` as loaded on the truck."""
    tracking_number = tracking_number.strip()
    if not tracking_number:
        raise ValidationError("Tracking number is required")

    result = await db.execute(
        select(Order)
        .options(selectinload(Order.store))
        .where(Order.tracking_number == tracking_number)
    )
    order = result.scalars().first()
    if not order:
        raise NotFoundError(
            "No order found with this tracking number",
            {"tracking_number": tracking_number},
        )
    if not order.label_url:
        raise ValidationError("This order does not have a shipping label yet")

    order.status = OrderStatus.LOADED_FOR_SHIPMENT
    order.loaded_for_shipment_at = utc_now()
    order.needs_design_revision = False
    order.review_reason = None

    await save_order(db, order)

    logger.info("Order %s loaded for shipment", order.order_number)
    return order


# ---------------------------------------------------------------------------
# Auto-advance
# ---------------------------------------------------------------------------


def _promotion_reason(order: Order, template) -> Optional[str]:
    """Why the order may leave pending_enrichment, or None to leave it."""
    if template.personalization_type == PersonalizationType.NONE:
        return "Product requires no personalization"
    if template.personalization_type == PersonalizationType.NOTES:
        if has_requested_personalization(line_items_of(order)):
            return "Product requires notes only and order has personalization data"
    return None


async def _promote(db: AsyncSession, order_id: uuid.UUID) -> bool:
    """Move one order to ready_for_design if it is still pending_enrichment."""
    result = await db.execute(
        update(Order)
        .where(
            Order.id == order_id,
            Order.status == OrderStatus.PENDING_ENRICHMENT,
        )
        .values(status=OrderStatus.READY_FOR_DESIGN)
    )
    await db.commit()
    return bool(result.rowcount)


async def auto_advance_batch(db: AsyncSession) -> AutoAdvanceResult:
    """
    Promote pending_enrichment orders whose product needs no further input.

    Orders without a SKU, without a template, or with unmet personalization
    are skipped. A failed update is logged and counted; the batch continues.
    """
    result = await db.execute(
        select(Order)
        .where(Order.status == OrderStatus.PENDING_ENRICHMENT)
        .order_by(Order.order_date)
    )
    orders = result.scalars().all()

    outcome = AutoAdvanceResult(total_checked=len(orders))
    if not orders:
        return outcome

    # Decide everything before the first commit so later rollbacks cannot
    # expire state we still need.
    skus = {sku for sku in (primary_sku(order) for order in orders) if sku}
    templates = await fetch_templates_by_sku(db, skus)

    planned: list[tuple[uuid.UUID, str, str]] = []
    for order in orders:
        sku = primary_sku(order)
        template = templates.get(sku) if sku else None
        reason = _promotion_reason(order, template) if template else None
        if reason is None:
            outcome.skipped += 1
            continue
        planned.append((order.id, sku, reason))

    for order_id, sku, reason in planned:
        try:
            promoted = await _promote(db, order_id)
        except Exception:
            await db.rollback()
            outcome.failed += 1
            logger.warning("Failed to auto-advance order %s", order_id, exc_info=True)
            continue

        if not promoted:
            # Left pending_enrichment while the batch was running
            outcome.skipped += 1
            logger.info("Order %s no longer pending enrichment; skipped", order_id)
            continue

        outcome.updated += 1
        outcome.updates.append(
            StatusChange(
                order_id=order_id,
                sku=sku,
                old_status=OrderStatus.PENDING_ENRICHMENT,
                new_status=OrderStatus.READY_FOR_DESIGN,
                reason=reason,
            )
        )

    logger.info(
        "Auto-advance complete: %d updated, %d skipped, %d failed",
        outcome.updated,
        outcome.skipped,
        outcome.failed,
    )
    return outcome
