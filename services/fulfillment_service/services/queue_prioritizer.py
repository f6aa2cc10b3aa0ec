"""Filtered, prioritized, paginated worklists for each workstation.

Ordering contract: the source query orders by date (newest first); search is
applied in memory; orders matching the priority predicate are moved to the
front without disturbing the date order inside either group; only then is
the result paginated. Pagination is never pushed into SQL here because the
in-memory steps would break it.
"""

from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, Sequence

from libs.common.logging import get_logger
from services.fulfillment_service.models import Order, OrderStatus
from services.fulfillment_service.services._helpers import line_items_of
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

PriorityPredicate = Callable[[Order], bool]


@dataclass(frozen=True)
class QueueDefinition:
    """Fixed filter/priority policy for one worklist."""

    name: str
    statuses: Optional[frozenset[OrderStatus]] = None
    priority: Optional[PriorityPredicate] = None
    require_tracking_number: bool = False
    sort_by_loaded_at: bool = False


@dataclass
class QueuePage:
    items: list[Order] = field(default_factory=list)
    total: int = 0


def needs_review(order: Order) -> bool:
    return order.status == OrderStatus.NEEDS_REVIEW


def needs_design_revision(order: Order) -> bool:
    return bool(order.needs_design_revision)


DESIGN_QUEUE = QueueDefinition(
    name="design",
    statuses=frozenset({OrderStatus.READY_FOR_DESIGN, OrderStatus.DESIGN_COMPLETE}),
    priority=needs_design_revision,
)
PRODUCTION_QUEUE = QueueDefinition(
    name="production",
    statuses=frozenset({OrderStatus.DESIGN_COMPLETE, OrderStatus.PENDING_FULFILLMENT}),
)
ORDER_LIST = QueueDefinition(name="orders", priority=needs_review)
LOADED_FOR_SHIPMENT_LIST = QueueDefinition(
    name="loaded_for_shipment",
    statuses=frozenset({OrderStatus.LOADED_FOR_SHIPMENT}),
    sort_by_loaded_at=True,
)
IN_TRANSIT_LIST = QueueDefinition(
    name="in_transit",
    statuses=frozenset({OrderStatus.IN_TRANSIT}),
    require_tracking_number=True,
    sort_by_loaded_at=True,
)


def matches_search(order: Order, term: str) -> bool:
    """Case-insensitive substring match over identity, customer, product and personalization."""
    needle = term.lower()
    line_items = line_items_of(order)

    candidates = [
        order.order_number,
        order.customer_name,
        order.customer_email,
        order.product_sku,
        order.product_name,
    ]
    for item in line_items:
        candidates.extend([item.sku, item.title])
    if any(value and needle in value.lower() for value in candidates):
        return True

    for item in line_items:
        for variation in item.variations or []:
            if needle in variation.name.lower():
                return True
            if variation.value and needle in variation.value.lower():
                return True
    return False


def stable_partition(
    orders: Iterable[Order], predicate: Optional[PriorityPredicate]
) -> list[Order]:
    """Orders satisfying ``predicate`` first; relative order kept in both groups."""
    orders = list(orders)
    if predicate is None:
        return orders
    first = [order for order in orders if predicate(order)]
    rest = [order for order in orders if not predicate(order)]
    return first + rest


async def list_queue(
    db: AsyncSession,
    queue: QueueDefinition,
    *,
    status_filter: Optional[Sequence[OrderStatus]] = None,
    search: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> QueuePage:
    """
    Build one page of ``queue``.

    ``status_filter`` narrows the queue's own status set. ``total`` counts the
    filtered sequence before pagination.
    """
    statuses = set(queue.statuses) if queue.statuses is not None else None
    if status_filter:
        statuses = set(status_filter) if statuses is None else statuses & set(status_filter)
        if not statuses:
            return QueuePage()

    query = select(Order).options(selectinload(Order.store))
    if statuses is not None:
        query = query.where(Order.status.in_(sorted(statuses, key=lambda s: s.value)))
    if queue.require_tracking_number:
        query = query.where(Order.tracking_number.is_not(None))

    if queue.sort_by_loaded_at:
        query = query.order_by(
            Order.loaded_for_shipment_at.desc().nulls_last(),
            Order.order_date.desc(),
            Order.id,
        )
    else:
        # Tie-break on id so repeated calls page identically
        query = query.order_by(Order.order_date.desc(), Order.id)

    result = await db.execute(query)
    orders: list[Order] = list(result.scalars().all())

    term = (search or "").strip()
    if term:
        orders = [order for order in orders if matches_search(order, term)]

    ordered = stable_partition(orders, queue.priority)
    page = ordered[offset : offset + limit]

    logger.debug(
        "Queue %s: %d matched, returning %d from offset %d",
        queue.name,
        len(ordered),
        len(page),
        offset,
    )
    return QueuePage(items=page, total=len(ordered))
