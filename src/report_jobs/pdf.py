"""PDF rendering of report analytics with reportlab."""

from __future__ import annotations

import io
from datetime import datetime
from typing import Any, Dict, List
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

BRAND_BLUE = colors.HexColor("#01A4FF")
HEADER_GREY = colors.HexColor("#4B5563")


def format_money(value: float) -> str:
    """``GHS 12,500`` style amount; fractions kept only when present."""
    amount = f"{value:,.0f}" if float(value).is_integer() else f"{value:,.2f}"
    return f"GHS {amount}"


def _footer(hotel_name: str):
    def draw(canvas, doc) -> None:
        canvas.saveState()
        canvas.setFont("Helvetica", 8)
        canvas.setFillColor(colors.grey)
        width = A4[0]
        canvas.drawCentredString(width / 2, 15 * mm, f"Page {doc.page}")
        canvas.drawCentredString(width / 2, 10 * mm, f"Confidential - {hotel_name} Internal Report")
        canvas.restoreState()

    return draw


def render_report_pdf(
    hotel_name: str,
    report_type: str,
    start_date: str,
    end_date: str,
    analytics: Dict[str, Any],
    generated_at: datetime | None = None,
) -> bytes:
    """Render the report and return the PDF bytes."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        title=f"{report_type.title()} Report {start_date} to {end_date}",
        bottomMargin=25 * mm,
    )
    styles = getSampleStyleSheet()
    elements: List[Any] = []

    elements.append(Paragraph(f"<b>{escape(hotel_name.upper())}</b>", styles["Title"]))
    elements.append(Paragraph(f"{report_type.upper()} PERFORMANCE REPORT", styles["Heading3"]))
    elements.append(Paragraph(f"<b>Period:</b> {start_date} to {end_date}", styles["Normal"]))
    generated = (generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M")
    elements.append(Paragraph(f"Generated on: {generated}", styles["Normal"]))
    elements.append(Spacer(1, 12))

    summary = Table(
        [
            ["Metric", "Value"],
            ["Total Bookings", str(analytics.get("totalBookings", 0))],
            ["Total Revenue", format_money(analytics.get("totalRevenue", 0))],
            ["Average Booking Value", format_money(analytics.get("avgBookingValue", 0))],
            ["Average Stay Duration", f"{analytics.get('avgNights', 0)} nights"],
        ],
        colWidths=[90 * mm, 70 * mm],
    )
    summary.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), BRAND_BLUE),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.whitesmoke]),
                ("FONTSIZE", (0, 0), (-1, -1), 10),
                ("TOPPADDING", (0, 0), (-1, -1), 5),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
            ]
        )
    )
    elements.append(summary)
    elements.append(Spacer(1, 18))

    elements.append(Paragraph("Top Performing Room Types", styles["Heading2"]))
    rooms = analytics.get("topRooms") or []
    if rooms:
        room_rows = [["Room Type", "Bookings", "Revenue"]]
        room_rows.extend([r["name"], str(r["count"]), format_money(r["revenue"])] for r in rooms)
        room_table = Table(room_rows, colWidths=[80 * mm, 30 * mm, 50 * mm])
        room_table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), HEADER_GREY),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                    ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
                ]
            )
        )
        elements.append(room_table)
    else:
        elements.append(Paragraph("No paid bookings in this period.", styles["Normal"]))
    elements.append(Spacer(1, 18))

    elements.append(Paragraph("Insights &amp; Observations", styles["Heading2"]))
    for insight in analytics.get("insights") or []:
        elements.append(Paragraph(f"&bull; {escape(insight)}", styles["Normal"]))

    footer = _footer(hotel_name)
    doc.build(elements, onFirstPage=footer, onLaterPages=footer)
    return buffer.getvalue()
