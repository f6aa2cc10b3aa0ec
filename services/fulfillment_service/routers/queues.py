"""Workstation queues: design, production, shipping and tracking."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.fulfillment_service.schemas import QueueResponse
from services.fulfillment_service.services.enrichment import enrich_orders
from services.fulfillment_service.services.queue_prioritizer import (
    DESIGN_QUEUE,
    IN_TRANSIT_LIST,
    LOADED_FOR_SHIPMENT_LIST,
    PRODUCTION_QUEUE,
    QueueDefinition,
    list_queue,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["queues"])

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500


async def build_queue_response(
    db: AsyncSession,
    queue: QueueDefinition,
    *,
    status_filter=None,
    search: Optional[str] = None,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
) -> QueueResponse:
    """Prioritize and paginate ``queue``, then enrich only the returned page."""
    page = await list_queue(
        db,
        queue,
        status_filter=status_filter,
        search=search,
        limit=limit,
        offset=offset,
    )
    return QueueResponse(
        orders=await enrich_orders(db, page.items),
        total=page.total,
        limit=limit,
        offset=offset,
    )


@router.get("/design-queue", response_model=QueueResponse)
async def design_queue(
    search: Optional[str] = None,
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Orders awaiting design; pending revisions first."""
    return await build_queue_response(
        db, DESIGN_QUEUE, search=search, limit=limit, offset=offset
    )


@router.get("/production-queue", response_model=QueueResponse)
async def production_queue(
    search: Optional[str] = None,
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Orders with finished designs waiting for the floor."""
    return await build_queue_response(
        db, PRODUCTION_QUEUE, search=search, limit=limit, offset=offset
    )


@router.get("/shipping/loaded-orders", response_model=QueueResponse)
async def loaded_orders(
    search: Optional[str] = None,
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await build_queue_response(
        db, LOADED_FOR_SHIPMENT_LIST, search=search, limit=limit, offset=offset
    )


@router.get("/tracking/in-transit", response_model=QueueResponse)
async def in_transit(
    search: Optional[str] = None,
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await build_queue_response(
        db, IN_TRANSIT_LIST, search=search, limit=limit, offset=offset
    )
