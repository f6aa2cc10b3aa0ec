"""
Model factories for creating valid test data.

Every factory produces a valid, insertable SQLAlchemy model instance.
Override any field via kwargs.

Usage:
    order = OrderFactory.create(status=OrderStatus.DESIGN_COMPLETE)
    db_session.add(order)
    await db_session.commit()
"""

import io
import uuid
from datetime import datetime, timedelta, timezone

from pypdf import PdfWriter

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _uuid() -> uuid.UUID:
    return uuid.uuid4()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def days_ago(days: float) -> datetime:
    return _now() - timedelta(days=days)


def _order_number() -> str:
    return str(uuid.uuid4().int)[:10]


def line_item(sku="MUG-11OZ", line_item_id=None, personalization=None, **overrides):
    """One ``order_detail.line_items`` entry."""
    item = {
        "line_item_id": line_item_id or uuid.uuid4().hex[:12],
        "sku": sku,
        "quantity": 1,
        "title": "Custom Mug",
    }
    if personalization is not None:
        item["variations"] = [{"name": "Personalization", "value": personalization}]
    item.update(overrides)
    return item


def design_file(line_item_id, file_path=None, file_url=None, file_name="design.pdf"):
    return {
        "line_item_id": line_item_id,
        "file_path": file_path,
        "file_url": file_url,
        "file_name": file_name,
    }


def pdf_bytes(pages: int = 1, width: float = 200, height: float = 200) -> bytes:
    """A valid PDF with ``pages`` blank pages of the given size."""
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=width, height=height)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Fulfillment Service
# ---------------------------------------------------------------------------


class StoreFactory:
    @staticmethod
    def create(**overrides):
        from services.fulfillment_service.models import Store, StorePlatform

        defaults = {
            "id": _uuid(),
            "store_name": "Test Store",
            "platform": StorePlatform.ETSY,
            "is_active": True,
            "last_sync_timestamp": _now(),
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Store(**defaults)


class ProductTemplateFactory:
    @staticmethod
    def create(**overrides):
        from services.fulfillment_service.models import (
            PersonalizationType,
            ProductTemplate,
        )

        defaults = {
            "id": _uuid(),
            "sku": f"SKU-{uuid.uuid4().hex[:6].upper()}",
            "name": "Test Product",
            "personalization_type": PersonalizationType.FULL,
            "default_length_inches": 6.0,
            "default_width_inches": 4.0,
            "default_height_inches": 4.0,
            "default_weight_oz": 12.0,
            "canva_template_url": "https://canva.example.com/template",
            "is_active": True,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return ProductTemplate(**defaults)


class OrderFactory:
    @staticmethod
    def create(line_items=None, **overrides):
        from services.fulfillment_service.models import Order, OrderStatus

        items = line_items if line_items is not None else [line_item()]
        first_sku = items[0].get("sku") if items else None
        defaults = {
            "id": _uuid(),
            "order_number": _order_number(),
            "customer_name": "Jane Buyer",
            "customer_email": "jane@example.com",
            "shipping_address_line1": "1 Main St",
            "shipping_city": "Austin",
            "shipping_state": "TX",
            "shipping_zip": "78701",
            "shipping_country": "US",
            "product_sku": first_sku,
            "product_name": items[0].get("title") if items else None,
            "status": OrderStatus.PENDING_ENRICHMENT,
            "needs_design_revision": False,
            "order_detail": {"line_items": items},
            "design_files": [],
            "order_date": _now(),
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Order(**defaults)
