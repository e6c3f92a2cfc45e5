"""
Order email templates.

Both templates share ``wrap_html()`` so customer and admin mail carry the
same layout. All interpolated values are escaped; amounts are minor
currency units rendered with thousands separators.
"""

from dataclasses import dataclass, field
from html import escape
from typing import Optional

GRADIENT_BRAND = "linear-gradient(135deg, #6CC5E9 0%, #3BA7D4 100%)"
GRADIENT_ADMIN = "linear-gradient(135deg, #334155 0%, #1e293b 100%)"


@dataclass
class OrderEmailData:
    """Resolved order + payment view used to render notifications."""

    reference: str
    customer_name: str
    customer_email: str
    customer_phone: str = ""
    items: list[dict] = field(default_factory=list)
    subtotal: int = 0
    shipping_cost: int = 0
    total: int = 0
    street: str = ""
    city: str = ""
    region: str = ""
    gateway_payment_id: Optional[str] = None
    transaction_amount: Optional[float] = None


def format_amount(value: Optional[float]) -> str:
    if value is None:
        return "-"
    return f"${value:,.0f}".replace(",", ".")


def wrap_html(title: str, body_html: str, header_gradient: str = GRADIENT_BRAND) -> str:
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="UTF-8"></head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; margin: 0;">
  <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="background: {header_gradient}; color: white; padding: 30px; text-align: center; border-radius: 10px 10px 0 0;">
      <h1 style="margin: 0;">{escape(title)}</h1>
    </div>
    <div style="background: #f9f9f9; padding: 30px; border-radius: 0 0 10px 10px;">
      {body_html}
    </div>
  </div>
</body>
</html>"""


def _box(inner: str) -> str:
    return (
        '<div style="background: white; padding: 20px; border-radius: 8px; '
        f'margin: 20px 0;">{inner}</div>'
    )


def _items_rows(items: list[dict]) -> str:
    cell = "padding: 10px; border-bottom: 1px solid #eee;"
    return "".join(
        f'<tr><td style="{cell}">{escape(str(item.get("title", "")))}</td>'
        f'<td style="{cell} text-align: center;">{int(item.get("quantity", 0))}</td>'
        f'<td style="{cell} text-align: right;">{format_amount(item.get("unit_price"))}</td></tr>'
        for item in items
    )


def _items_table(data: OrderEmailData, with_breakdown: bool) -> str:
    right = "padding: 10px; text-align: right;"
    breakdown = ""
    if with_breakdown:
        breakdown = (
            f'<tr><td colspan="2" style="{right}"><strong>Subtotal:</strong></td>'
            f'<td style="{right}">{format_amount(data.subtotal)}</td></tr>'
            f'<tr><td colspan="2" style="{right}"><strong>Envío:</strong></td>'
            f'<td style="{right}">{format_amount(data.shipping_cost)}</td></tr>'
        )
    return (
        '<table style="width: 100%; border-collapse: collapse;">'
        '<thead><tr style="background: #f5f5f5;">'
        '<th style="padding: 10px; text-align: left;">Producto</th>'
        '<th style="padding: 10px; text-align: center;">Cantidad</th>'
        '<th style="padding: 10px; text-align: right;">Precio</th>'
        "</tr></thead><tbody>"
        f"{_items_rows(data.items)}{breakdown}"
        f'<tr style="background: #f5f5f5;"><td colspan="2" style="{right}"><strong>Total:</strong></td>'
        f'<td style="{right}"><strong>{format_amount(data.total)}</strong></td></tr>'
        "</tbody></table>"
    )


def _address(data: OrderEmailData) -> str:
    place = ", ".join(part for part in (data.city, data.region) if part)
    return f"{escape(data.street)}<br>{escape(place)}"


def render_customer_confirmation(
    data: OrderEmailData, store_name: str, support_email: str
) -> tuple[str, str]:
    """Return ``(subject, html)`` for the buyer's confirmation email."""
    subject = f"Confirmación de compra #{data.reference}"
    body = (
        f"<p>Hola <strong>{escape(data.customer_name)}</strong>,</p>"
        "<p>¡Tu pedido ha sido confirmado exitosamente!</p>"
        + _box(
            f'<h2 style="color: #3BA7D4; margin-top: 0;">Orden #{escape(data.reference)}</h2>'
            + _items_table(data, with_breakdown=True)
        )
        + _box(
            '<h3 style="color: #3BA7D4; margin-top: 0;">Dirección de envío</h3>'
            f"<p>{_address(data)}</p>"
        )
        + '<p style="color: #666; font-size: 14px;">Tu pedido será procesado en '
        "2-5 días hábiles y te contactaremos para coordinar el despacho.</p>"
        + '<p style="color: #666; font-size: 14px;">Si tienes alguna pregunta, '
        f'contáctanos en <a href="mailto:{escape(support_email)}">{escape(support_email)}</a></p>'
    )
    return subject, wrap_html(f"¡Gracias por tu compra en {store_name}!", body)


def render_admin_alert(data: OrderEmailData, store_name: str) -> tuple[str, str]:
    """Return ``(subject, html)`` for the store owner's new-order alert."""
    subject = f"Nueva orden #{data.reference}"
    body = (
        f'<h2 style="color: #3BA7D4;">Orden #{escape(data.reference)}</h2>'
        + _box(
            '<h3 style="margin-top: 0;">Cliente</h3><p>'
            f"<strong>Nombre:</strong> {escape(data.customer_name)}<br>"
            f"<strong>Email:</strong> {escape(data.customer_email)}<br>"
            f"<strong>Teléfono:</strong> {escape(data.customer_phone)}</p>"
        )
        + _box('<h3 style="margin-top: 0;">Productos</h3>' + _items_table(data, False))
        + _box(
            '<h3 style="margin-top: 0;">Dirección de envío</h3>'
            f"<p>{_address(data)}</p>"
        )
        + '<div style="background: #fff3cd; padding: 15px; border-radius: 8px; '
        'border-left: 4px solid #ffc107;"><p style="margin: 0;">'
        f"<strong>ID de pago:</strong> {escape(data.gateway_payment_id or '-')}<br>"
        f"<strong>Monto cobrado:</strong> {format_amount(data.transaction_amount)}"
        "</p></div>"
    )
    return subject, wrap_html(f"Nueva orden - {store_name}", body, GRADIENT_ADMIN)
