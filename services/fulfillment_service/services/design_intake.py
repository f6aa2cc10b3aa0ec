"""Workstation intake: buyer personalization and per-line-item design uploads."""

import copy
import uuid
from dataclasses import dataclass
from typing import Optional, Sequence

from libs.common.datetime_utils import epoch_millis
from libs.common.exceptions import ConflictError, UpstreamError, ValidationError
from libs.common.logging import get_logger
from libs.common.storage import BlobStore
from services.fulfillment_service.models import Order, OrderStatus
from services.fulfillment_service.schemas import PersonalizationEntry
from services.fulfillment_service.services._helpers import PERSONALIZATION_VARIATION
from services.fulfillment_service.services.status_engine import (
    get_order_or_404,
    save_order,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

DESIGN_CONTENT_TYPE = "application/pdf"
MAX_DESIGN_FILE_BYTES = 50 * 1024 * 1024

# Statuses from which a complete set of designs moves the order to design_complete
DESIGNABLE_STATUSES = frozenset(
    {OrderStatus.PENDING_ENRICHMENT, OrderStatus.READY_FOR_DESIGN}
)


@dataclass
class DesignUpload:
    order: Order
    file_url: str
    all_complete: bool


def _raw_line_items(detail: dict) -> dict[str, dict]:
    """Stored line item dicts keyed by their id as a string."""
    return {
        str(raw["line_item_id"]): raw
        for raw in detail.get("line_items") or []
        if raw.get("line_item_id") is not None
    }


def _append_note(existing: Optional[str], note: str) -> str:
    return f"{existing}\n{note}" if existing else note


async def submit_personalization(
    db: AsyncSession,
    order_id: uuid.UUID,
    entries: Sequence[PersonalizationEntry],
    notes: Optional[str] = None,
) -> Order:
    """
    Record the buyer's personalization text and release the order to design.

    Each entry replaces the "Personalization" variation of its line item.
    Blank text leaves the line item untouched.
    """
    order = await get_order_or_404(db, order_id)
    if order.status != OrderStatus.PENDING_ENRICHMENT:
        raise ConflictError(
            "This order has already been processed",
            {"order_id": str(order_id), "status": order.status.value},
        )

    detail = copy.deepcopy(order.order_detail or {})
    raw_items = _raw_line_items(detail)
    unknown = [entry.line_item_id for entry in entries if entry.line_item_id not in raw_items]
    if unknown:
        raise ValidationError("Unknown line item", {"line_item_ids": unknown})

    for entry in entries:
        text = entry.text.strip()
        if not text:
            continue
        raw = raw_items[entry.line_item_id]
        variations = [
            variation
            for variation in raw.get("variations") or []
            if str(variation.get("name", "")).strip().lower() != PERSONALIZATION_VARIATION
        ]
        variations.append({"name": "Personalization", "value": text})
        raw["variations"] = variations

    order.order_detail = detail
    if notes and notes.strip():
        order.notes = _append_note(order.notes, notes.strip())
    order.status = OrderStatus.READY_FOR_DESIGN
    order.review_reason = None

    await save_order(db, order)

    logger.info(
        "Personalization submitted for order %s (%d item(s))",
        order.order_number,
        len(entries),
    )
    return order


def _validate_design_file(
    data: bytes, content_type: Optional[str], line_item_id: Optional[str]
) -> str:
    line_item_id = (line_item_id or "").strip()
    if not line_item_id:
        raise ValidationError("Line item id is required")
    if not data:
        raise ValidationError("No file provided")
    if content_type != DESIGN_CONTENT_TYPE:
        raise ValidationError(
            "Only PDF files are allowed", {"content_type": content_type}
        )
    if len(data) > MAX_DESIGN_FILE_BYTES:
        raise ValidationError(
            f"File is too large ({len(data) / 1024 / 1024:.1f}MB). Maximum size is 50MB."
        )
    return line_item_id


async def attach_design(
    db: AsyncSession,
    blob_store: BlobStore,
    order_id: uuid.UUID,
    line_item_id: Optional[str],
    filename: Optional[str],
    content_type: Optional[str],
    data: bytes,
) -> DesignUpload:
    """
    Upload the design PDF for one line item and record it on the order.

    A new upload replaces the line item's previous design. Once every line
    item has a design, an order still in the design queue moves to
    design_complete.
    """
    line_item_id = _validate_design_file(data, content_type, line_item_id)
    order = await get_order_or_404(db, order_id)

    line_item_ids = set(_raw_line_items(order.order_detail or {}))
    if line_item_id not in line_item_ids:
        raise ValidationError(
            "Unknown line item",
            {"order_id": str(order_id), "line_item_id": line_item_id},
        )

    path = f"{order.id}/{line_item_id}_{epoch_millis()}.pdf"
    try:
        file_url = await blob_store.put(path, data, DESIGN_CONTENT_TYPE)
    except UpstreamError:
        raise
    except Exception as exc:
        raise UpstreamError(
            "Failed to upload design file", {"path": path, "error": str(exc)}
        ) from exc

    existing = list(order.design_files or [])
    superseded = [
        entry.get("file_path")
        for entry in existing
        if str(entry.get("line_item_id")) == line_item_id
        and entry.get("file_path") not in (None, path)
    ]
    design_files = [
        entry for entry in existing if str(entry.get("line_item_id")) != line_item_id
    ]
    design_files.append(
        {
            "line_item_id": line_item_id,
            "file_path": path,
            "file_url": file_url,
            "file_name": filename or f"{line_item_id}.pdf",
        }
    )

    designed = {str(entry.get("line_item_id")) for entry in design_files}
    all_complete = line_item_ids <= designed

    order.design_files = design_files
    if all_complete and order.status in DESIGNABLE_STATUSES:
        order.status = OrderStatus.DESIGN_COMPLETE
        order.needs_design_revision = False
        order.design_revision_notes = None

    try:
        await save_order(db, order)
    except SQLAlchemyError as exc:
        await db.rollback()
        # Do not leave an upload no order points at
        await _discard(blob_store, [path])
        raise UpstreamError("Failed to update order", {"error": str(exc)}) from exc

    if superseded:
        await _discard(blob_store, superseded)

    logger.info(
        "Design uploaded for order %s line item %s%s",
        order.order_number,
        line_item_id,
        " (all designs complete)" if all_complete else "",
    )
    return DesignUpload(order=order, file_url=file_url, all_complete=all_complete)


async def _discard(blob_store: BlobStore, paths: list[str]) -> None:
    try:
        await blob_store.remove(paths)
    except Exception as e:
        logger.warning("Failed to remove design file(s) %s: %s", paths, e)
