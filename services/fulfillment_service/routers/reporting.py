"""Dashboard and catalog reporting endpoints."""

from fastapi import APIRouter, Depends
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.fulfillment_service.schemas import DashboardStats, UnconfiguredSkuList
from services.fulfillment_service.services import reporting
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["reporting"])


@router.get("/dashboard/stats", response_model=DashboardStats)
async def dashboard_stats(
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Order counts by status for the dashboard chart."""
    return await reporting.dashboard_stats(db)


@router.get("/products/unconfigured-skus", response_model=UnconfiguredSkuList)
async def unconfigured_skus(
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """SKUs on orders that have no product template."""
    return await reporting.unconfigured_skus(db)
