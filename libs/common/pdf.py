"""
PDF generation utilities using ReportLab.
"""

import io
from typing import List, Optional
from xml.sax.saxutils import escape

from reportlab.graphics.barcode.code128 import Code128
from reportlab.lib import colors
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import (
    PageBreak,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)


def _text(value: Optional[str], default: str = "-") -> str:
    return escape(value) if value else default


def _lines(values: List[Optional[str]]) -> str:
    return "<br/>".join(escape(v) for v in values if v) or "-"


def generate_order_details_pdf(
    orders: List[
        dict
    ],  # [{"order_number", "order_date", "store_name", "customer_name", "customer_email", "ship_to": [str], "items": [dict]}]
    title: Optional[str] = None,
) -> bytes:
    """
    Generate the printable order-details sheet, one page per order.

    Each item dict carries "title", "sku", "quantity", "variations" (text),
    "notes" (list of str) and "design_file" (file name or None).

    Returns PDF as bytes for download.
    """
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=LETTER,
        rightMargin=0.5 * inch,
        leftMargin=0.5 * inch,
        topMargin=0.5 * inch,
        bottomMargin=0.5 * inch,
        title=title or "Order Details",
    )

    styles = getSampleStyleSheet()
    elements = []

    order_title_style = ParagraphStyle(
        "OrderTitle",
        parent=styles["Heading1"],
        fontSize=20,
        textColor=colors.HexColor("#1e293b"),
        spaceAfter=4,
    )
    meta_style = ParagraphStyle(
        "OrderMeta",
        parent=styles["Normal"],
        fontSize=10,
        textColor=colors.HexColor("#64748b"),
    )
    box_header_style = ParagraphStyle(
        "BoxHeader",
        parent=styles["Normal"],
        fontSize=8,
        fontName="Helvetica-Bold",
        textColor=colors.HexColor("#64748b"),
    )
    cell_style = ParagraphStyle("Cell", parent=styles["Normal"], fontSize=9, leading=11)

    for index, order in enumerate(orders):
        if index:
            elements.append(PageBreak())

        # Header: order number on the left, scannable barcode on the right
        heading = [
            Paragraph(f"Order #{_text(order['order_number'])}", order_title_style),
            Paragraph(
                f"Date: {_text(order.get('order_date'))} | "
                f"Store: {_text(order.get('store_name'), 'Unknown')}",
                meta_style,
            ),
        ]
        barcode = Code128(
            str(order["order_number"]),
            barHeight=0.5 * inch,
            barWidth=1.2,
            humanReadable=True,
        )
        header_table = Table([[heading, barcode]], colWidths=[4.5 * inch, 3 * inch])
        header_table.setStyle(
            TableStyle(
                [
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("ALIGN", (1, 0), (1, 0), "RIGHT"),
                    ("LINEBELOW", (0, 0), (-1, 0), 1, colors.HexColor("#1e293b")),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 10),
                ]
            )
        )
        elements.append(header_table)
        elements.append(Spacer(1, 12))

        # Buyer / ship-to boxes
        buyer = [
            Paragraph("BUYER", box_header_style),
            Paragraph(
                _lines([order.get("customer_name"), order.get("customer_email")]),
                cell_style,
            ),
        ]
        ship_to = [
            Paragraph("SHIP TO", box_header_style),
            Paragraph(_lines(order.get("ship_to") or []), cell_style),
        ]
        info_table = Table([[buyer, ship_to]], colWidths=[3.75 * inch, 3.75 * inch])
        info_table.setStyle(
            TableStyle(
                [
                    ("BOX", (0, 0), (0, 0), 0.5, colors.HexColor("#e2e8f0")),
                    ("BOX", (1, 0), (1, 0), 0.5, colors.HexColor("#e2e8f0")),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("PADDING", (0, 0), (-1, -1), 8),
                ]
            )
        )
        elements.append(info_table)
        elements.append(Spacer(1, 16))

        # Line items
        item_data = [["Product", "Variations", "Notes", "Design"]]
        for item in order.get("items", []):
            product = (
                f"<b>{_text(item.get('title'), 'Unknown')}</b><br/>"
                f"SKU: {_text(item.get('sku'))}<br/>"
                f"Qty: {item.get('quantity') or 1}"
            )
            design = item.get("design_file")
            item_data.append(
                [
                    Paragraph(product, cell_style),
                    Paragraph(_text(item.get("variations")), cell_style),
                    Paragraph(_lines(item.get("notes") or []), cell_style),
                    Paragraph(
                        escape(design) if design else "No Design",
                        cell_style,
                    ),
                ]
            )

        item_table = Table(
            item_data,
            colWidths=[2.3 * inch, 1.8 * inch, 2.1 * inch, 1.3 * inch],
            repeatRows=1,
        )
        item_table.setStyle(
            TableStyle(
                [
                    # Header
                    ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#1e293b")),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 0), (-1, 0), 9),
                    # Body
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#e2e8f0")),
                    ("PADDING", (0, 0), (-1, -1), 6),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ]
            )
        )
        elements.append(item_table)

    # Build PDF
    doc.build(elements)
    buffer.seek(0)
    return buffer.getvalue()
