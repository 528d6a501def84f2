# backend/utils/pdf.py

from pathlib import Path

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from config import settings
from models.address import Address
from models.invoice import Invoice
from models.order import Order

FONT_REGULAR_NAME = "Helvetica"
FONT_BOLD_NAME = "Helvetica-Bold"


def ensure_storage_dir() -> Path:
    storage_dir = Path(settings.INVOICE_STORAGE_DIR)
    storage_dir.mkdir(parents=True, exist_ok=True)
    return storage_dir


def get_pdf_path(invoice: Invoice) -> Path:
    """
    Path of the rendered PDF for an invoice.

    Invoice ids restart after a database reset and the payment status changes on
    cancellation, so the name also carries the order id, the creation time and
    the status. A file rendered for another invoice or status never matches.
    """
    created = f"{invoice.created_at:%Y%m%d%H%M%S}" if invoice.created_at else "draft"
    return ensure_storage_dir() / (
        f"{invoice.full_number}-O{invoice.order_id}-{created}-{invoice.payment_status.value}.pdf"
    )


def _address_lines(address: Address):
    if address is None:
        return ["-"]
    lines = [address.street, f"{address.postal_code} {address.city}"]
    if address.state:
        lines.append(address.state)
    lines.append(address.country)
    return lines


def generate_invoice_pdf(order: Order, out_path: Path) -> Path:
    """
    Renders the invoice of an order:
    - header with invoice number and date
    - customer, billing and shipping blocks
    - line items (frozen purchase prices)
    - subtotal, discount, shipping and total
    """
    invoice = order.invoice
    c = canvas.Canvas(str(out_path), pagesize=A4)
    width, height = A4

    def draw_text(x, y, text, font=FONT_REGULAR_NAME, size=10, align="left"):
        c.setFont(font, size)
        text_str = str(text) if text is not None else ""
        if align == "right":
            c.drawRightString(x, y, text_str)
        elif align == "center":
            c.drawCentredString(x, y, text_str)
        else:
            c.drawString(x, y, text_str)

    # --- 1. Header ---
    y = height - 20 * mm
    draw_text(190 * mm, y, f"Invoice: {invoice.full_number}", font=FONT_BOLD_NAME, size=16, align="right")
    y -= 8 * mm
    draw_text(190 * mm, y, f"Date: {invoice.created_at:%Y-%m-%d}" if invoice.created_at else "", align="right")
    y -= 5 * mm
    draw_text(190 * mm, y, f"Order #{order.id}", align="right")

    y -= 6 * mm
    c.setLineWidth(0.5)
    c.line(20 * mm, y, 190 * mm, y)
    y -= 10 * mm

    # --- 2. Customer / billing / shipping ---
    customer = order.user
    name = " ".join(p for p in [customer.first_name, customer.last_name] if p) or customer.email
    columns = [
        (20 * mm, "CUSTOMER:", [name, customer.email]),
        (80 * mm, "BILL TO:", _address_lines(invoice.billing_address)),
        (140 * mm, "SHIP TO:", _address_lines(order.shipping_address)),
    ]
    lowest = y
    for x, label, lines in columns:
        local_y = y
        draw_text(x, local_y, label, font=FONT_BOLD_NAME)
        for line in lines:
            local_y -= 5 * mm
            draw_text(x, local_y, str(line)[:32])
        lowest = min(lowest, local_y)
    y = lowest - 12 * mm

    # --- 3. Items table ---
    c.setFillColorRGB(0.95, 0.95, 0.95)
    c.rect(20 * mm, y - 2 * mm, 170 * mm, 8 * mm, fill=1, stroke=0)
    c.setFillColorRGB(0, 0, 0)

    c.setFont(FONT_BOLD_NAME, 9)
    c.drawString(22 * mm, y, "#")
    c.drawString(30 * mm, y, "Product")
    c.drawString(105 * mm, y, "Variant")
    c.drawRightString(140 * mm, y, "Qty")
    c.drawRightString(160 * mm, y, "Unit price")
    c.drawRightString(185 * mm, y, "Amount")
    y -= 8 * mm

    c.setFont(FONT_REGULAR_NAME, 9)
    subtotal = 0.0
    for idx, item in enumerate(order.items, start=1):
        variant = item.variant
        product_name = variant.product.name if variant and variant.product else f"Variant {item.product_variant_id}"
        variant_label = " / ".join(p for p in [variant.color, variant.size] if p) if variant else ""
        line_total = item.price * item.quantity
        subtotal += line_total

        c.drawString(22 * mm, y, str(idx))
        c.drawString(30 * mm, y, product_name[:40])
        c.drawString(105 * mm, y, variant_label[:18])
        c.drawRightString(140 * mm, y, str(item.quantity))
        c.drawRightString(160 * mm, y, f"{item.price:.2f}")
        c.drawRightString(185 * mm, y, f"{line_total:.2f}")

        c.setLineWidth(0.1)
        c.line(20 * mm, y - 2 * mm, 190 * mm, y - 2 * mm)
        y -= 6 * mm

        if y < 40 * mm:
            c.showPage()
            y = height - 20 * mm
            c.setFont(FONT_REGULAR_NAME, 9)

    # --- 4. Summary ---
    y -= 5 * mm
    if y < 50 * mm:
        c.showPage()
        y = height - 30 * mm

    discount = order.discount_amount or 0.0
    shipping = max(invoice.amount - (subtotal - discount), 0.0)

    c.setFont(FONT_BOLD_NAME, 10)
    rows = [("Subtotal:", subtotal)]
    if discount:
        rows.append((f"Discount ({order.coupon_code}):", -discount))
    rows.append(("Shipping:", shipping))
    for label, amount in rows:
        c.drawRightString(150 * mm, y, label)
        c.drawRightString(185 * mm, y, f"{amount:.2f}")
        y -= 5 * mm

    y -= 1 * mm
    c.setFont(FONT_BOLD_NAME, 12)
    c.drawRightString(150 * mm, y, "TOTAL:")
    c.drawRightString(185 * mm, y, f"{invoice.amount:.2f}")

    y -= 8 * mm
    c.setFont(FONT_REGULAR_NAME, 9)
    c.drawRightString(185 * mm, y, f"Payment: {order.payment_method or '-'} ({invoice.payment_status.value})")

    c.showPage()
    c.save()
    return out_path
