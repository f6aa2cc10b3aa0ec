"""Merge per-order design PDFs that share a SKU into one production document."""

import asyncio
import io
import uuid
from dataclasses import dataclass
from typing import Optional, Sequence

from libs.common.concurrency import gather_bounded
from libs.common.config import get_settings
from libs.common.datetime_utils import epoch_millis
from libs.common.exceptions import NotFoundError, ValidationError
from libs.common.logging import get_logger
from libs.common.storage import BlobStore, fetch_url_bytes
from pypdf import PdfReader, PdfWriter
from services.fulfillment_service.models import Order, OrderStatus
from services.fulfillment_service.schemas import DesignFile
from services.fulfillment_service.services._helpers import design_files_of, line_items_of
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

PRODUCTION_STATUSES = (OrderStatus.DESIGN_COMPLETE, OrderStatus.PENDING_FULFILLMENT)


@dataclass(frozen=True)
class LocatedDesign:
    order_number: str
    line_item_id: Optional[str]
    design_file: DesignFile


@dataclass
class AssembledDocument:
    content: bytes
    filename: str
    page_count: int
    files_merged: int
    files_skipped: int

    media_type: str = "application/pdf"


async def fetch_production_orders(
    db: AsyncSession, order_ids: Optional[Sequence[uuid.UUID]] = None
) -> list[Order]:
    """Production-eligible orders, oldest first."""
    query = (
        select(Order)
        .options(selectinload(Order.store))
        .where(Order.status.in_(PRODUCTION_STATUSES))
        .order_by(Order.order_date.asc(), Order.id)
    )
    if order_ids:
        query = query.where(Order.id.in_(list(order_ids)))
    result = await db.execute(query)
    return list(result.scalars().all())


def locate_design_files(orders: Sequence[Order], sku: str) -> list[LocatedDesign]:
    """Design files of every line item whose SKU equals ``sku`` exactly.

    SKUs are stored size-expanded, so there is no prefix matching.
    """
    located: list[LocatedDesign] = []
    for order in orders:
        design_files = design_files_of(order)
        for item in line_items_of(order):
            if not item.sku or item.sku != sku:
                continue
            design_file = next(
                (df for df in design_files if df.line_item_id == item.line_item_id),
                None,
            )
            if design_file and (design_file.file_path or design_file.file_url):
                located.append(
                    LocatedDesign(
                        order_number=order.order_number,
                        line_item_id=item.line_item_id,
                        design_file=design_file,
                    )
                )
    return located


async def _retrieve(blob_store: BlobStore, design: LocatedDesign) -> bytes:
    timeout = get_settings().BLOB_FETCH_TIMEOUT_SECONDS
    design_file = design.design_file
    if design_file.file_path:
        return await asyncio.wait_for(blob_store.get(design_file.file_path), timeout)
    return await fetch_url_bytes(design_file.file_url, timeout=timeout)


def _read_pages(data: bytes) -> list:
    reader = PdfReader(io.BytesIO(data))
    # Materialize every page so a corrupt file contributes nothing
    return list(reader.pages)


def _copy_pages(writer: PdfWriter, pages: list) -> list:
    """Clone ``pages`` into ``writer`` without adding them to its page tree."""
    return [page.clone(writer) for page in pages]


async def assemble_by_sku(
    db: AsyncSession,
    blob_store: BlobStore,
    sku: str,
    order_ids: Optional[Sequence[uuid.UUID]] = None,
) -> AssembledDocument:
    """
    Combine the design files for ``sku`` into a single PDF.

    Files are retrieved concurrently but their pages are appended serially in
    order-date order. A file that cannot be fetched or parsed is skipped.
    """
    sku = (sku or "").strip()
    if not sku:
        raise ValidationError("SKU parameter is required")

    orders = await fetch_production_orders(db, order_ids)
    located = locate_design_files(orders, sku)
    if not located:
        raise NotFoundError(
            f"No design files found for SKU: {sku}",
            {"message": "Make sure the SKU exists in the production queue with uploaded designs"},
        )

    results = await gather_bounded(
        located,
        lambda design: _retrieve(blob_store, design),
        limit=get_settings().FANOUT_CONCURRENCY,
    )

    writer = PdfWriter()
    merged = skipped = 0
    for design, result in zip(located, results):
        if isinstance(result, BaseException):
            skipped += 1
            logger.warning(
                "Failed to fetch design file for order #%s: %s",
                design.order_number,
                result,
            )
            continue
        try:
            pages = _copy_pages(writer, _read_pages(result))
        except Exception as e:
            skipped += 1
            logger.warning(
                "Failed to parse design file for order #%s: %s", design.order_number, e
            )
            continue

        # Only files whose every page copied cleanly reach the output
        for page in pages:
            writer.add_page(page)
        merged += 1
        logger.debug("Added %d page(s) from order #%s", len(pages), design.order_number)

    if len(writer.pages) == 0:
        raise NotFoundError(f"No design files found for SKU: {sku}")

    buffer = io.BytesIO()
    writer.write(buffer)

    logger.info(
        "Assembled %d page(s) for SKU %s from %d file(s), %d skipped",
        len(writer.pages),
        sku,
        merged,
        skipped,
    )
    return AssembledDocument(
        content=buffer.getvalue(),
        filename=f"{sku}_combined_{epoch_millis()}.pdf",
        page_count=len(writer.pages),
        files_merged=merged,
        files_skipped=skipped,
    )
