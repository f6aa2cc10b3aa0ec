"""Cascading deletion across blob storage, the order table and store checkpoints.

Each operation runs as an ordered saga with no cross-resource transaction:

1. remove design-file blobs (best effort, counted)
2. delete order rows
3. reset ``last_sync_timestamp`` so the source re-imports on its next sync

A failure between steps can leave orphaned blobs or rows pointing at
missing blobs. Every step is idempotent, so the whole call can be retried.
"""

import uuid
from typing import Optional, Sequence

from libs.common.concurrency import gather_bounded
from libs.common.config import get_settings
from libs.common.exceptions import UpstreamError, ValidationError
from libs.common.logging import get_logger
from libs.common.storage import BlobStore, join_path
from services.fulfillment_service.models import Order, Store
from services.fulfillment_service.schemas import BulkDeleteResult, ClearAllResult
from services.fulfillment_service.services._helpers import design_files_of
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

CLEAR_ALL_CONFIRMATION = "DELETE_ALL_ORDERS"

# Paths per remove call when wiping the bucket
REMOVE_BATCH_SIZE = 100


async def _remove_blobs(blob_store: BlobStore, batches: list[list[str]]) -> int:
    """Remove each batch independently; return the number of blobs removed."""
    if not batches:
        return 0

    results = await gather_bounded(
        batches, blob_store.remove, limit=get_settings().FANOUT_CONCURRENCY
    )
    removed = 0
    for batch, result in zip(batches, results):
        if isinstance(result, BaseException):
            logger.warning("Failed to delete file(s) %s: %s", batch, result)
            continue
        removed += result
    return removed


async def _delete_rows(db: AsyncSession, statement) -> int:
    try:
        result = await db.execute(statement)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise UpstreamError("Failed to delete orders", {"error": str(exc)}) from exc
    return result.rowcount or 0


async def _reset_checkpoints(
    db: AsyncSession, store_ids: Optional[Sequence[uuid.UUID]] = None
) -> int:
    """Null the sync checkpoint for ``store_ids`` (every store when None)."""
    statement = update(Store).values(last_sync_timestamp=None)
    if store_ids is not None:
        if not store_ids:
            return 0
        statement = statement.where(Store.id.in_(list(store_ids)))
    try:
        result = await db.execute(statement)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise UpstreamError(
            "Orders deleted but store sync checkpoints were not reset",
            {"error": str(exc)},
        ) from exc
    return result.rowcount or 0


async def bulk_delete(
    db: AsyncSession, blob_store: BlobStore, order_ids: Sequence[uuid.UUID]
) -> BulkDeleteResult:
    """Delete the given orders, their design files, and reset their stores' checkpoints."""
    order_ids = list(dict.fromkeys(order_ids))
    if not order_ids:
        raise ValidationError("Order IDs array is required")

    # Capture references before anything is removed
    result = await db.execute(select(Order).where(Order.id.in_(order_ids)))
    targets = result.scalars().all()

    store_ids = list(dict.fromkeys(o.store_id for o in targets if o.store_id))
    paths = [
        design_file.file_path
        for order in targets
        for design_file in design_files_of(order)
        if design_file.file_path
    ]

    files_deleted = await _remove_blobs(blob_store, [[path] for path in paths])
    if files_deleted:
        logger.info("[Bulk Delete] Deleted %d design file(s) from storage", files_deleted)

    deleted = await _delete_rows(db, delete(Order).where(Order.id.in_(order_ids)))

    # Only after the rows are gone, so the next sync re-imports them
    stores_reset = await _reset_checkpoints(db, store_ids)
    if stores_reset:
        logger.info("[Bulk Delete] Reset sync timestamps for %d store(s)", stores_reset)

    logger.info("[Bulk Delete] Deleted %d order(s)", deleted)
    return BulkDeleteResult(
        deleted=deleted, files_deleted=files_deleted, stores_reset=stores_reset
    )


async def collect_blob_paths(blob_store: BlobStore, prefix: str = "") -> list[str]:
    """Every object path under ``prefix``, walking folders recursively.

    A folder that cannot be listed is logged and skipped.
    """
    try:
        entries = await blob_store.list_entries(prefix)
    except Exception as e:
        logger.warning("Failed to list storage folder %r: %s", prefix or "/", e)
        return []

    paths: list[str] = []
    for entry in entries:
        path = join_path(prefix, entry.name)
        if entry.is_folder:
            paths.extend(await collect_blob_paths(blob_store, path))
        else:
            paths.append(path)
    return paths


async def clear_all(
    db: AsyncSession, blob_store: BlobStore, confirm: Optional[str]
) -> ClearAllResult:
    """
    Wipe every order and design file and reset every store checkpoint.

    Irreversible. ``confirm`` must equal CLEAR_ALL_CONFIRMATION.
    """
    if confirm != CLEAR_ALL_CONFIRMATION:
        raise ValidationError(f"Must provide confirm: '{CLEAR_ALL_CONFIRMATION}'")

    paths = await collect_blob_paths(blob_store)
    batches = [
        paths[i : i + REMOVE_BATCH_SIZE] for i in range(0, len(paths), REMOVE_BATCH_SIZE)
    ]
    files_deleted = await _remove_blobs(blob_store, batches)
    logger.warning("[Clear] Deleted %d design file(s) from storage", files_deleted)

    deleted = await _delete_rows(db, delete(Order))
    stores_reset = await _reset_checkpoints(db)

    logger.warning(
        "[Clear] Deleted %d order(s); reset %d store checkpoint(s)", deleted, stores_reset
    )
    return ClearAllResult(
        deleted_count=deleted, files_deleted=files_deleted, stores_reset=stores_reset
    )
