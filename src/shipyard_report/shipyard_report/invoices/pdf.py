"""
A4 invoice rendering (reportlab).
"""

from __future__ import annotations

from io import BytesIO
from typing import Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..common.datetime_utils import fmt_long_date
from ..common.money import format_idr
from .model import InvoicePrintData

_TABLE_STYLE = [
    ("BACKGROUND", (0, 0), (-1, 0), "#F3F4F6"),
    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
    ("FONTSIZE", (0, 0), (-1, -1), 8),
    ("GRID", (0, 0), (-1, -1), 0.4, "#BBBBBB"),
    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ("TOPPADDING", (0, 0), (-1, -1), 3),
    ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
]


def _fmt_qty(value) -> str:
    if value is None:
        return "-"
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _section_title(text: str, styles) -> Paragraph:
    return Paragraph(f"<b>{text}</b>", styles["Heading4"])


def _info_table(data: InvoicePrintData, width: float) -> Table:
    inv = data.invoice
    vessel_name = (data.vessel.name if data.vessel else None) or inv.vessel_name or "-"
    company = (data.vessel.company if data.vessel else None) or inv.vessel_company or "-"
    rows = [
        ["Client Company:", company, "Vessel Name:", vessel_name],
        ["UP:", "ACCOUNTING", "Shipyard WO:", data.work_order.shipyard_wo_number],
        [
            "Invoice Date:",
            fmt_long_date(inv.created_at.date() if inv.created_at else None),
            "Customer WO:",
            data.work_order.customer_wo_number or "-",
        ],
        ["Faktur Number:", inv.faktur_number or "-", "Due Date:", fmt_long_date(inv.due_date)],
    ]
    if data.bastp:
        rows.append(["BASTP Number:", data.bastp.number, "BASTP Date:", fmt_long_date(data.bastp.date)])
    table = Table(rows, colWidths=[0.18 * width, 0.32 * width, 0.18 * width, 0.32 * width], hAlign="LEFT")
    table.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (-1, -1), "Helvetica"),
                ("FONTNAME", (1, 0), (1, -1), "Helvetica-Bold"),
                ("FONTNAME", (3, 0), (3, -1), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 8),
                ("TEXTCOLOR", (0, 0), (0, -1), colors.grey),
                ("TEXTCOLOR", (2, 0), (2, -1), colors.grey),
            ]
        )
    )
    return table


def _services_table(data: InvoicePrintData, width: float, cell: ParagraphStyle) -> Optional[Table]:
    if not data.services:
        return None
    rows: list[list[object]] = [["No.", "Service Name", "Total Days", "Unit Price (IDR)", "Amount (IDR)"]]
    for i, s in enumerate(data.services, start=1):
        rows.append(
            [
                str(i),
                Paragraph(escape(s.service_name or "-"), cell),
                str(s.total_days),
                format_idr(s.unit_price),
                format_idr(s.payment_price),
            ]
        )
    rows.append(["", "", "", "Subtotal", format_idr(data.services_total)])
    table = Table(
        rows,
        colWidths=[0.07 * width, 0.43 * width, 0.12 * width, 0.19 * width, 0.19 * width],
        repeatRows=1,
        hAlign="LEFT",
    )
    style = list(_TABLE_STYLE) + [
        ("ALIGN", (2, 1), (2, -1), "CENTER"),
        ("ALIGN", (3, 1), (-1, -1), "RIGHT"),
        ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
    ]
    table.setStyle(TableStyle(style))
    return table


def _work_table(data: InvoicePrintData, width: float, cell: ParagraphStyle) -> Table:
    rows: list[list[object]] = [["No.", "Description", "Location", "Qty", "UoM", "Amount (IDR)"]]
    for i, line in enumerate(data.lines, start=1):
        rows.append(
            [
                str(i),
                Paragraph(escape(line.description or "-"), cell),
                Paragraph(escape(line.location or "-"), cell),
                _fmt_qty(line.quantity),
                line.uom or "-",
                format_idr(line.payment_price) if line.payment_price is not None else "-",
            ]
        )
    rows.append(["", "", "", "", "Subtotal", format_idr(data.work_details_total)])
    table = Table(
        rows,
        colWidths=[0.07 * width, 0.38 * width, 0.18 * width, 0.08 * width, 0.10 * width, 0.19 * width],
        repeatRows=1,
        hAlign="LEFT",
    )
    style = list(_TABLE_STYLE) + [
        ("ALIGN", (3, 1), (4, -1), "CENTER"),
        ("ALIGN", (5, 1), (5, -1), "RIGHT"),
        ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
    ]
    table.setStyle(TableStyle(style))
    return table


def render_invoice_pdf(data: InvoicePrintData, *, company_name: str = "") -> bytes:
    """Render the printable invoice and return the PDF bytes."""
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=12 * mm,
        rightMargin=12 * mm,
        topMargin=12 * mm,
        bottomMargin=12 * mm,
        title=f"Invoice {data.invoice.invoice_number or data.invoice.id}",
    )
    width = A4[0] - doc.leftMargin - doc.rightMargin

    styles = getSampleStyleSheet()
    cell = ParagraphStyle("InvoiceCell", parent=styles["Normal"], fontSize=8, leading=10)
    center = ParagraphStyle("InvoiceCenter", parent=styles["Normal"], alignment=1, fontSize=9)

    story: list[object] = []
    if company_name:
        story.append(Paragraph(f"<b>{escape(company_name)}</b>", center))
        story.append(Spacer(1, 3 * mm))
    story.append(Paragraph("<b>INVOICE</b>", ParagraphStyle("InvoiceTitle", parent=styles["Title"], fontSize=18)))
    story.append(Paragraph(escape(data.invoice.invoice_number or "Draft Invoice"), center))
    story.append(Spacer(1, 6 * mm))
    story.append(_info_table(data, width))
    story.append(Spacer(1, 5 * mm))

    services = _services_table(data, width, cell)
    if services is not None:
        story.append(_section_title("General Services", styles))
        story.append(services)
        story.append(Spacer(1, 4 * mm))

    story.append(_section_title("Work Details", styles))
    story.append(_work_table(data, width, cell))
    story.append(Spacer(1, 5 * mm))

    totals = Table(
        [["GRAND TOTAL", format_idr(data.grand_total)]],
        colWidths=[0.81 * width, 0.19 * width],
        hAlign="LEFT",
    )
    totals.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (-1, -1), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 9),
                ("ALIGN", (0, 0), (-1, -1), "RIGHT"),
                ("LINEABOVE", (0, 0), (-1, 0), 0.8, colors.black),
            ]
        )
    )
    story.append(totals)

    inv = data.invoice
    story.append(Spacer(1, 6 * mm))
    status = f"PAID on {fmt_long_date(inv.payment_date)}" if inv.payment_status else "UNPAID"
    story.append(Paragraph(f"Payment status: <b>{status}</b>", cell))
    if inv.remarks:
        story.append(Paragraph(f"Remarks: {escape(inv.remarks)}", cell))

    doc.build(story)
    return buffer.getvalue()
