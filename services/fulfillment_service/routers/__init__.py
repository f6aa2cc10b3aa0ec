"""Fulfillment service routers."""

from services.fulfillment_service.routers.orders import router as orders_router
from services.fulfillment_service.routers.production import router as production_router
from services.fulfillment_service.routers.queues import router as queues_router
from services.fulfillment_service.routers.reporting import router as reporting_router

__all__ = [
    "orders_router",
    "production_router",
    "queues_router",
    "reporting_router",
]
