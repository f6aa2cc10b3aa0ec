"""Order list, detail, status and intake endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from libs.auth.dependencies import get_current_user, require_admin
from libs.auth.models import AuthUser
from libs.common.storage import BlobStore, get_blob_store
from libs.db.session import get_async_db
from services.fulfillment_service.routers.queues import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    build_queue_response,
)
from services.fulfillment_service.schemas import (
    AutoAdvanceResult,
    BulkDeleteRequest,
    BulkDeleteResult,
    ClearAllRequest,
    ClearAllResult,
    DesignUploadResponse,
    EnrichedOrderResponse,
    LoadForShipmentRequest,
    OrderStatusUpdate,
    PersonalizationSubmission,
    QueueResponse,
    RevisionRequest,
)
from services.fulfillment_service.services import (
    cascade_deleter,
    design_intake,
    status_engine,
)
from services.fulfillment_service.services.enrichment import enrich_orders
from services.fulfillment_service.services.queue_prioritizer import ORDER_LIST
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/orders", tags=["orders"])


async def _enriched(db: AsyncSession, order) -> EnrichedOrderResponse:
    return (await enrich_orders(db, [order]))[0]


@router.get("", response_model=QueueResponse)
async def list_orders(
    status: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """All orders, newest first, with orders needing review pinned to the top."""
    status_filter = None
    if status and status != "all":
        status_filter = [status_engine.parse_status(status)]
    return await build_queue_response(
        db,
        ORDER_LIST,
        status_filter=status_filter,
        search=search,
        limit=limit,
        offset=offset,
    )


# ---------------------------------------------------------------------------
# Batch operations (declared before /{order_id} routes)
# ---------------------------------------------------------------------------


@router.post("/update-statuses", response_model=AutoAdvanceResult)
async def update_statuses(
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Advance pending_enrichment orders whose product needs no further input."""
    return await status_engine.auto_advance_batch(db)


@router.post("/load-for-shipment", response_model=EnrichedOrderResponse)
async def load_for_shipment(
    payload: LoadForShipmentRequest,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    order = await status_engine.load_for_shipment(db, payload.tracking_number)
    return await _enriched(db, order)


@router.post("/bulk-delete", response_model=BulkDeleteResult)
async def bulk_delete_orders(
    payload: BulkDeleteRequest,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """Delete orders, their design files, and reset their stores' sync checkpoints."""
    return await cascade_deleter.bulk_delete(db, blob_store, payload.order_ids)


@router.post("/clear", response_model=ClearAllResult)
async def clear_all_orders(
    payload: ClearAllRequest,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """Delete every order and design file. Requires the confirmation phrase."""
    return await cascade_deleter.clear_all(db, blob_store, payload.confirm)


# ---------------------------------------------------------------------------
# Single order
# ---------------------------------------------------------------------------


@router.get("/{order_id}", response_model=EnrichedOrderResponse)
async def get_order(
    order_id: uuid.UUID,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    order = await status_engine.get_order_or_404(db, order_id)
    return await _enriched(db, order)


@router.patch("/{order_id}/status", response_model=EnrichedOrderResponse)
async def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    order = await status_engine.set_status(
        db, order_id, payload.status, payload.review_reason
    )
    return await _enriched(db, order)


@router.post("/{order_id}/production", response_model=EnrichedOrderResponse)
async def start_production(
    order_id: uuid.UUID,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    order = await status_engine.start_production(db, order_id)
    return await _enriched(db, order)


@router.post("/{order_id}/production/revision", response_model=EnrichedOrderResponse)
async def request_revision(
    order_id: uuid.UUID,
    payload: Optional[RevisionRequest] = None,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Send the order back to design with the floor's notes."""
    notes = payload.revision_notes if payload else None
    order = await status_engine.request_revision(db, order_id, notes)
    return await _enriched(db, order)


@router.post("/{order_id}/personalization", response_model=EnrichedOrderResponse)
async def submit_personalization(
    order_id: uuid.UUID,
    payload: PersonalizationSubmission,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Record the buyer's personalization and release the order to design."""
    order = await design_intake.submit_personalization(
        db, order_id, payload.items, payload.notes
    )
    return await _enriched(db, order)


@router.post("/{order_id}/design", response_model=DesignUploadResponse)
async def upload_design(
    order_id: uuid.UUID,
    line_item_id: str = Form(...),
    file: UploadFile = File(...),
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """Upload the design PDF for one line item."""
    data = await file.read()
    upload = await design_intake.attach_design(
        db,
        blob_store,
        order_id,
        line_item_id=line_item_id,
        filename=file.filename,
        content_type=file.content_type,
        data=data,
    )
    return DesignUploadResponse(
        file_url=upload.file_url,
        all_complete=upload.all_complete,
        order=await _enriched(db, upload.order),
    )
