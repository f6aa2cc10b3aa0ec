"""Dashboard counts and catalog gaps."""

from services.fulfillment_service.models import Order, OrderStatus, ProductTemplate
from services.fulfillment_service.schemas import (
    DashboardStats,
    StatusCount,
    UnconfiguredSku,
    UnconfiguredSkuList,
)
from services.fulfillment_service.services._helpers import line_items_of
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession


async def dashboard_stats(db: AsyncSession) -> DashboardStats:
    """Order count per status, largest first."""
    result = await db.execute(
        select(Order.status, func.count(Order.id)).group_by(Order.status)
    )
    chart_data = [
        StatusCount(status=OrderStatus(status).label, status_key=status, count=count)
        for status, count in result.all()
    ]
    chart_data.sort(key=lambda row: (-row.count, row.status_key.value))
    return DashboardStats(
        chart_data=chart_data, total=sum(row.count for row in chart_data)
    )


async def unconfigured_skus(db: AsyncSession) -> UnconfiguredSkuList:
    """SKUs seen on orders (any line item) that have no product template yet."""
    configured = set((await db.execute(select(ProductTemplate.sku))).scalars().all())
    orders = (
        (await db.execute(select(Order).order_by(Order.order_date))).scalars().all()
    )

    # First product name seen wins
    seen: dict[str, str] = {}
    for order in orders:
        if order.product_sku:
            seen.setdefault(order.product_sku, order.product_name or "")
        for item in line_items_of(order):
            if item.sku:
                seen.setdefault(item.sku, item.title or order.product_name or "")

    items = [
        UnconfiguredSku(sku=sku, product_name=seen[sku])
        for sku in sorted(seen)
        if sku not in configured
    ]
    return UnconfiguredSkuList(unconfigured_skus=items, count=len(items))
