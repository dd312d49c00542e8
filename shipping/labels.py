from io import BytesIO

from reportlab.lib.pagesizes import A6
from reportlab.pdfgen import canvas


def label_filename(awb_number: str) -> str:
    return f"shipping-label-{awb_number}.pdf"


def render_label(shipment, box) -> bytes:
    """Render a single-box shipping label as PDF bytes."""
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=A6)
    width, height = A6

    y = height - 30
    c.setFont("Helvetica-Bold", 14)
    c.drawString(20, y, "Shipping Label")
    y -= 24
    c.setFont("Helvetica-Bold", 12)
    c.drawString(20, y, f"AWB: {box.awb_number}")
    y -= 18
    c.setFont("Helvetica", 10)
    c.drawString(20, y, f"Shipment: {shipment.id}")
    y -= 14
    c.drawString(20, y, f"Box: {box.box_number} of {len(shipment.boxes)}")
    y -= 14
    c.drawString(20, y, f"Weight: {box.weight:.2f} kg")
    y -= 14
    recipient = shipment.service_center_id or shipment.distributor_id or "-"
    c.drawString(20, y, f"Ship to ({shipment.recipient_type}): {recipient}")
    y -= 14
    c.drawString(20, y, f"Priority: {shipment.priority}")
    y -= 22
    c.setFont("Helvetica-Bold", 10)
    c.drawString(20, y, "Contents")
    y -= 14
    c.setFont("Helvetica", 10)
    for bp in box.box_parts:
        c.drawString(26, y, f"- {bp.part_id} x {bp.quantity}")
        y -= 12
        if y < 30:
            c.showPage()
            y = height - 30
            c.setFont("Helvetica", 10)
    c.showPage()
    c.save()
    return buf.getvalue()
