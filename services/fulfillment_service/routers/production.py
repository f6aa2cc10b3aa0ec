"""Printable production documents."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Response
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.exceptions import ValidationError
from libs.common.storage import BlobStore, get_blob_store
from libs.db.session import get_async_db
from services.fulfillment_service.services.document_assembler import (
    AssembledDocument,
    assemble_by_sku,
)
from services.fulfillment_service.services.order_sheet import render_order_details
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/production-queue", tags=["production"])


def parse_order_ids(raw: Optional[str]) -> Optional[list[uuid.UUID]]:
    """Parse the comma-separated ``orderIds`` query parameter."""
    if not raw:
        return None
    values = [part.strip() for part in raw.split(",") if part.strip()]
    try:
        return [uuid.UUID(value) for value in values] or None
    except ValueError:
        raise ValidationError("Invalid order id in orderIds", {"orderIds": raw}) from None


def _pdf_response(document: AssembledDocument) -> Response:
    return Response(
        content=document.content,
        media_type=document.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{document.filename}"',
            "Content-Length": str(len(document.content)),
        },
    )


@router.get("/download-sku")
async def download_sku(
    sku: Optional[str] = None,
    orderIds: Optional[str] = None,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """Merge every production design file for one SKU into a single PDF."""
    document = await assemble_by_sku(
        db, blob_store, sku or "", order_ids=parse_order_ids(orderIds)
    )
    return _pdf_response(document)


@router.get("/download-order-details")
async def download_order_details(
    sku: Optional[str] = None,
    orderIds: Optional[str] = None,
    allSkus: bool = False,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """One order-details page per production order for a SKU (or every SKU)."""
    document = await render_order_details(
        db, sku, order_ids=parse_order_ids(orderIds), all_skus=allSkus
    )
    return _pdf_response(document)
