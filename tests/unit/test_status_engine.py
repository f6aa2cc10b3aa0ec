"""Unit tests for status_engine transitions and auto-advance.

Tests call status_engine functions directly with the db_session fixture.
"""

import logging
import uuid

import pytest
from libs.common.exceptions import NotFoundError, ValidationError
from services.fulfillment_service.models import Order, OrderStatus, PersonalizationType
from services.fulfillment_service.services import status_engine
from sqlalchemy import select, update
from tests.factories import (
    OrderFactory,
    ProductTemplateFactory,
    StoreFactory,
    line_item,
)


async def _add(db, *objects):
    db.add_all(objects)
    await db.commit()
    return objects


# ---------------------------------------------------------------------------
# set_status
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_set_status_rejects_unknown_status(db_session):
    (order,) = await _add(db_session, OrderFactory.create())

    with pytest.raises(ValidationError) as exc_info:
        await status_engine.set_status(db_session, order.id, "shipped_by_owl")

    assert exc_info.value.message == "Invalid status"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_set_status_missing_order(db_session):
    with pytest.raises(NotFoundError):
        await status_engine.set_status(
            db_session, uuid.uuid4(), OrderStatus.READY_FOR_DESIGN
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_set_status_needs_review_keeps_reason(db_session):
    (order,) = await _add(db_session, OrderFactory.create())

    updated = await status_engine.set_status(
        db_session, order.id, "needs_review", "Address looks wrong"
    )

    assert updated.status == OrderStatus.NEEDS_REVIEW
    assert updated.review_reason == "Address looks wrong"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_set_status_clears_review_reason_when_leaving_review(db_session):
    (order,) = await _add(
        db_session,
        OrderFactory.create(status=OrderStatus.NEEDS_REVIEW, review_reason="Check SKU"),
    )

    updated = await status_engine.set_status(
        db_session, order.id, OrderStatus.READY_FOR_DESIGN, "ignored"
    )

    assert updated.status == OrderStatus.READY_FOR_DESIGN
    assert updated.review_reason is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_set_status_clears_revision_flag_outside_design_queue(db_session):
    (order,) = await _add(
        db_session,
        OrderFactory.create(
            status=OrderStatus.READY_FOR_DESIGN, needs_design_revision=True
        ),
    )

    updated = await status_engine.set_status(
        db_session, order.id, OrderStatus.DESIGN_COMPLETE
    )

    assert updated.needs_design_revision is False


@pytest.mark.asyncio
@pytest.mark.unit
async def test_set_status_ready_for_design_keeps_revision_flag(db_session):
    (order,) = await _add(
        db_session,
        OrderFactory.create(
            status=OrderStatus.READY_FOR_DESIGN, needs_design_revision=True
        ),
    )

    updated = await status_engine.set_status(
        db_session, order.id, OrderStatus.READY_FOR_DESIGN
    )

    assert updated.needs_design_revision is True


@pytest.mark.asyncio
@pytest.mark.unit
async def test_set_status_loaded_for_shipment_requires_label(db_session):
    (order,) = await _add(
        db_session, OrderFactory.create(status=OrderStatus.LABELS_GENERATED)
    )

    with pytest.raises(ValidationError):
        await status_engine.set_status(
            db_session, order.id, OrderStatus.LOADED_FOR_SHIPMENT
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_set_status_loaded_for_shipment_stamps_time(db_session):
    (order,) = await _add(
        db_session,
        OrderFactory.create(
            status=OrderStatus.LABELS_GENERATED,
            label_url="https://labels.example.com/1.pdf",
        ),
    )

    updated = await status_engine.set_status(
        db_session, order.id, OrderStatus.LOADED_FOR_SHIPMENT
    )

    assert updated.status == OrderStatus.LOADED_FOR_SHIPMENT
    assert updated.loaded_for_shipment_at is not None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_set_status_override_is_logged(db_session, caplog):
    (order,) = await _add(db_session, OrderFactory.create())

    with caplog.at_level(logging.WARNING):
        updated = await status_engine.set_status(
            db_session, order.id, OrderStatus.DELIVERED
        )

    assert updated.status == OrderStatus.DELIVERED
    assert "Status override" in caplog.text


# ---------------------------------------------------------------------------
# Production hand-off
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_start_production_clears_revision_state(db_session):
    (order,) = await _add(
        db_session,
        OrderFactory.create(
            status=OrderStatus.DESIGN_COMPLETE,
            needs_design_revision=True,
            design_revision_notes="Font too small",
        ),
    )

    updated = await status_engine.start_production(db_session, order.id)

    assert updated.status == OrderStatus.IN_PRODUCTION
    assert updated.production_started_at is not None
    assert updated.needs_design_revision is False
    assert updated.design_revision_notes is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_request_revision_returns_order_to_design(db_session):
    (order,) = await _add(
        db_session, OrderFactory.create(status=OrderStatus.IN_PRODUCTION)
    )
    await status_engine.start_production(db_session, order.id)

    updated = await status_engine.request_revision(
        db_session, order.id, "Wrong color"
    )

    assert updated.status == OrderStatus.READY_FOR_DESIGN
    assert updated.needs_design_revision is True
    assert updated.design_revision_notes == "Wrong color"
    assert updated.production_started_at is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_start_production_missing_order(db_session):
    with pytest.raises(NotFoundError):
        await status_engine.start_production(db_session, uuid.uuid4())


@pytest.mark.asyncio
@pytest.mark.unit
async def test_load_for_shipment_by_tracking_number(db_session):
    (order,) = await _add(
        db_session,
        OrderFactory.create(
            status=OrderStatus.LABELS_GENERATED,
            tracking_number="9400111899223",
            label_url="https://labels.example.com/2.pdf",
        ),
    )

    updated = await status_engine.load_for_shipment(db_session, " 9400111899223 ")

    assert updated.id == order.id
    assert updated.status == OrderStatus.LOADED_FOR_SHIPMENT
    assert updated.loaded_for_shipment_at is not None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_load_for_shipment_unknown_tracking_number(db_session):
    with pytest.raises(NotFoundError):
        await status_engine.load_for_shipment(db_session, "does-not-exist")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_load_for_shipment_without_label(db_session):
    await _add(
        db_session,
        OrderFactory.create(
            status=OrderStatus.LABELS_GENERATED, tracking_number="1Z999"
        ),
    )

    with pytest.raises(ValidationError):
        await status_engine.load_for_shipment(db_session, "1Z999")


# ---------------------------------------------------------------------------
# auto_advance_batch
# ---------------------------------------------------------------------------


async def _statuses(db) -> dict:
    result = await db.execute(select(Order.order_number, Order.status))
    return dict(result.all())


@pytest.mark.asyncio
@pytest.mark.unit
async def test_auto_advance_promotes_only_eligible_orders(db_session):
    none_tpl = ProductTemplateFactory.create(
        sku="STICKER", personalization_type=PersonalizationType.NONE
    )
    notes_tpl = ProductTemplateFactory.create(
        sku="MUG", personalization_type=PersonalizationType.NOTES
    )
    full_tpl = ProductTemplateFactory.create(
        sku="PORTRAIT", personalization_type=PersonalizationType.FULL
    )
    plain = OrderFactory.create(
        order_number="1001", line_items=[line_item(sku="STICKER")]
    )
    personalized = OrderFactory.create(
        order_number="1002", line_items=[line_item(sku="MUG", personalization="Ana")]
    )
    declined = OrderFactory.create(
        order_number="1003",
        line_items=[line_item(sku="MUG", personalization="Not requested on this item")],
    )
    full = OrderFactory.create(
        order_number="1004", line_items=[line_item(sku="PORTRAIT")]
    )
    unknown = OrderFactory.create(
        order_number="1005", line_items=[line_item(sku="NO-TEMPLATE")]
    )
    elsewhere = OrderFactory.create(
        order_number="1006",
        status=OrderStatus.DESIGN_COMPLETE,
        line_items=[line_item(sku="STICKER")],
    )
    await _add(
        db_session,
        none_tpl,
        notes_tpl,
        full_tpl,
        plain,
        personalized,
        declined,
        full,
        unknown,
        elsewhere,
    )

    result = await status_engine.auto_advance_batch(db_session)

    assert result.total_checked == 5
    assert result.updated == 2
    assert result.skipped == 3
    assert result.failed == 0
    assert {u.order_id for u in result.updates} == {plain.id, personalized.id}

    statuses = await _statuses(db_session)
    assert statuses["1001"] == OrderStatus.READY_FOR_DESIGN
    assert statuses["1002"] == OrderStatus.READY_FOR_DESIGN
    assert statuses["1003"] == OrderStatus.PENDING_ENRICHMENT
    assert statuses["1004"] == OrderStatus.PENDING_ENRICHMENT
    assert statuses["1005"] == OrderStatus.PENDING_ENRICHMENT
    assert statuses["1006"] == OrderStatus.DESIGN_COMPLETE


@pytest.mark.asyncio
@pytest.mark.unit
async def test_auto_advance_skips_orders_without_sku(db_session):
    await _add(db_session, OrderFactory.create(line_items=[]))

    result = await status_engine.auto_advance_batch(db_session)

    assert result.total_checked == 1
    assert result.skipped == 1
    assert result.updated == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_auto_advance_continues_after_failed_update(db_session, monkeypatch):
    template = ProductTemplateFactory.create(
        sku="STICKER", personalization_type=PersonalizationType.NONE
    )
    first = OrderFactory.create(order_number="2001", line_items=[line_item(sku="STICKER")])
    second = OrderFactory.create(order_number="2002", line_items=[line_item(sku="STICKER")])
    await _add(db_session, template, first, second)
    # Rollbacks expire ORM state; keep plain ids
    first_id, second_id = first.id, second.id

    original = status_engine._promote

    async def flaky_promote(db, order_id):
        if order_id == first_id:
            raise RuntimeError("connection reset")
        return await original(db, order_id)

    monkeypatch.setattr(status_engine, "_promote", flaky_promote)

    result = await status_engine.auto_advance_batch(db_session)

    assert result.updated == 1
    assert result.failed == 1
    assert [u.order_id for u in result.updates] == [second_id]

    statuses = await _statuses(db_session)
    assert statuses["2001"] == OrderStatus.PENDING_ENRICHMENT
    assert statuses["2002"] == OrderStatus.READY_FOR_DESIGN


@pytest.mark.asyncio
@pytest.mark.unit
async def test_auto_advance_empty_batch(db_session):
    result = await status_engine.auto_advance_batch(db_session)

    assert result.total_checked == 0
    assert result.updates == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_auto_advance_skips_order_that_moved_mid_batch(db_session, monkeypatch):
    template = ProductTemplateFactory.create(
        sku="STICKER", personalization_type=PersonalizationType.NONE
    )
    moved = OrderFactory.create(order_number="3001", line_items=[line_item(sku="STICKER")])
    kept = OrderFactory.create(order_number="3002", line_items=[line_item(sku="STICKER")])
    await _add(db_session, template, moved, kept)
    moved_id, kept_id = moved.id, kept.id

    original_lookup = status_engine.fetch_templates_by_sku

    async def lookup_then_operator_edit(db, skus):
        templates = await original_lookup(db, skus)
        # Another operator flags the order while the batch is deciding
        await db.execute(
            update(Order)
            .where(Order.id == moved_id)
            .values(status=OrderStatus.NEEDS_REVIEW)
        )
        await db.commit()
        return templates

    monkeypatch.setattr(
        status_engine, "fetch_templates_by_sku", lookup_then_operator_edit
    )

    result = await status_engine.auto_advance_batch(db_session)

    assert result.total_checked == 2
    assert result.updated == 1
    assert result.skipped == 1
    assert [u.order_id for u in result.updates] == [kept_id]

    statuses = await _statuses(db_session)
    assert statuses["3001"] == OrderStatus.NEEDS_REVIEW
    assert statuses["3002"] == OrderStatus.READY_FOR_DESIGN


@pytest.mark.asyncio
@pytest.mark.unit
async def test_mutations_return_order_with_store_loaded(db_session):
    store = StoreFactory.create(store_name="Main Etsy")
    order = OrderFactory.create(store_id=store.id, status=OrderStatus.DESIGN_COMPLETE)
    await _add(db_session, store, order)
    db_session.expunge_all()

    fetched = await status_engine.get_order_or_404(db_session, order.id)
    assert fetched.store_name == "Main Etsy"

    started = await status_engine.start_production(db_session, order.id)
    assert started.store_name == "Main Etsy"

    changed = await status_engine.set_status(db_session, order.id, "needs_review")
    assert changed.store_name == "Main Etsy"
