"""Unit tests for personalization submission and design uploads."""

import pytest
from libs.common.exceptions import ConflictError, UpstreamError, ValidationError
from services.fulfillment_service.models import OrderStatus
from services.fulfillment_service.schemas import PersonalizationEntry
from services.fulfillment_service.services import design_intake
from services.fulfillment_service.services._helpers import (
    has_requested_personalization,
    line_items_of,
)
from tests.factories import OrderFactory, design_file, line_item, pdf_bytes


async def _add(db, *objects):
    db.add_all(objects)
    await db.commit()
    return objects


async def _upload(db, blob_store, order, line_item_id, **overrides):
    kwargs = {
        "line_item_id": line_item_id,
        "filename": f"{line_item_id}.pdf",
        "content_type": "application/pdf",
        "data": pdf_bytes(),
    }
    kwargs.update(overrides)
    return await design_intake.attach_design(db, blob_store, order.id, **kwargs)


# ---------------------------------------------------------------------------
# submit_personalization
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_personalization_replaces_variation_and_releases_order(db_session):
    order = OrderFactory.create(
        line_items=[
            line_item(
                line_item_id="li-1",
                variations=[
                    {"name": "Color", "value": "Blue"},
                    {"name": "Personalization", "value": "Not requested on this item"},
                ],
            ),
            line_item(line_item_id="li-2"),
        ],
        notes="Ship early",
    )
    await _add(db_session, order)

    updated = await design_intake.submit_personalization(
        db_session,
        order.id,
        [
            PersonalizationEntry(line_item_id="li-1", text="  Happy 30th, Sam  "),
            PersonalizationEntry(line_item_id="li-2", text="   "),
        ],
        notes="Gift for my brother",
    )

    assert updated.status == OrderStatus.READY_FOR_DESIGN
    assert updated.notes == "Ship early\nGift for my brother"
    first, second = line_items_of(updated)
    assert [(v.name, v.value) for v in first.variations] == [
        ("Color", "Blue"),
        ("Personalization", "Happy 30th, Sam"),
    ]
    assert second.variations is None
    assert has_requested_personalization([first])


@pytest.mark.asyncio
@pytest.mark.unit
async def test_personalization_rejected_after_enrichment(db_session):
    (order,) = await _add(
        db_session, OrderFactory.create(status=OrderStatus.READY_FOR_DESIGN)
    )

    with pytest.raises(ConflictError):
        await design_intake.submit_personalization(db_session, order.id, [])


@pytest.mark.asyncio
@pytest.mark.unit
async def test_personalization_unknown_line_item(db_session):
    (order,) = await _add(
        db_session, OrderFactory.create(line_items=[line_item(line_item_id="li-1")])
    )

    with pytest.raises(ValidationError) as exc_info:
        await design_intake.submit_personalization(
            db_session, order.id, [PersonalizationEntry(line_item_id="li-9", text="x")]
        )

    assert exc_info.value.details == {"line_item_ids": ["li-9"]}


# ---------------------------------------------------------------------------
# attach_design
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_design_upload_records_file_and_completes_when_all_designed(
    db_session, blob_store
):
    (order,) = await _add(
        db_session,
        OrderFactory.create(
            status=OrderStatus.READY_FOR_DESIGN,
            needs_design_revision=True,
            design_revision_notes="Font too small",
            line_items=[line_item(line_item_id="li-1"), line_item(line_item_id=42)],
        ),
    )

    first = await _upload(db_session, blob_store, order, "li-1")

    assert first.all_complete is False
    assert first.order.status == OrderStatus.READY_FOR_DESIGN
    (recorded,) = first.order.design_files
    assert recorded["line_item_id"] == "li-1"
    assert recorded["file_path"].startswith(f"{order.id}/li-1_")
    assert recorded["file_url"] == first.file_url
    assert recorded["file_name"] == "li-1.pdf"
    assert blob_store.files[recorded["file_path"]] == pdf_bytes()

    second = await _upload(db_session, blob_store, order, "42")

    assert second.all_complete is True
    assert second.order.status == OrderStatus.DESIGN_COMPLETE
    assert second.order.needs_design_revision is False
    assert second.order.design_revision_notes is None
    assert len(second.order.design_files) == 2


@pytest.mark.asyncio
@pytest.mark.unit
async def test_design_reupload_replaces_previous_file(db_session, blob_store):
    blob_store.files = {"old/li-1.pdf": b"old design"}
    (order,) = await _add(
        db_session,
        OrderFactory.create(
            status=OrderStatus.DESIGN_COMPLETE,
            line_items=[line_item(line_item_id="li-1")],
            design_files=[design_file("li-1", file_path="old/li-1.pdf")],
        ),
    )

    upload = await _upload(db_session, blob_store, order, "li-1")

    (recorded,) = upload.order.design_files
    assert recorded["file_path"] != "old/li-1.pdf"
    assert "old/li-1.pdf" not in blob_store.files
    assert upload.order.status == OrderStatus.DESIGN_COMPLETE


@pytest.mark.asyncio
@pytest.mark.unit
async def test_design_upload_does_not_pull_order_back_from_production(
    db_session, blob_store
):
    (order,) = await _add(
        db_session,
        OrderFactory.create(
            status=OrderStatus.IN_PRODUCTION,
            line_items=[line_item(line_item_id="li-1")],
        ),
    )

    upload = await _upload(db_session, blob_store, order, "li-1")

    assert upload.all_complete is True
    assert upload.order.status == OrderStatus.IN_PRODUCTION


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"content_type": "image/png"}, "Only PDF files are allowed"),
        ({"data": b""}, "No file provided"),
        ({"line_item_id": "  "}, "Line item id is required"),
        ({"line_item_id": "li-404"}, "Unknown line item"),
    ],
)
async def test_design_upload_validation(db_session, blob_store, overrides, message):
    (order,) = await _add(
        db_session, OrderFactory.create(line_items=[line_item(line_item_id="li-1")])
    )
    kwargs = {"line_item_id": "li-1", **overrides}

    with pytest.raises(ValidationError) as exc_info:
        await _upload(db_session, blob_store, order, **kwargs)

    assert exc_info.value.message == message
    assert blob_store.put_calls == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_design_upload_rejects_oversized_file(db_session, blob_store, monkeypatch):
    monkeypatch.setattr(design_intake, "MAX_DESIGN_FILE_BYTES", 10)
    (order,) = await _add(
        db_session, OrderFactory.create(line_items=[line_item(line_item_id="li-1")])
    )

    with pytest.raises(ValidationError):
        await _upload(db_session, blob_store, order, "li-1")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_failed_upload_leaves_order_unchanged(db_session, blob_store):
    (order,) = await _add(
        db_session,
        OrderFactory.create(
            status=OrderStatus.READY_FOR_DESIGN,
            line_items=[line_item(line_item_id="li-1")],
        ),
    )
    blob_store.fail_put.add(f"{order.id}/")

    with pytest.raises(UpstreamError):
        await _upload(db_session, blob_store, order, "li-1")

    await db_session.refresh(order)
    assert order.design_files == []
    assert order.status == OrderStatus.READY_FOR_DESIGN
