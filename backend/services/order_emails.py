# services/order_emails.py
# ============================================================================
# ELORA CHECKOUT BACKEND - ORDER EMAIL CONTENT
# ============================================================================
# Plain structured content for the two paid-order emails. Branded templates
# are handled outside this service.
# ============================================================================

from html import escape

from gateway.money import format_czk, to_minor_units
from schemas.order import Order
from services.notifier import EmailMessage


SHIPPING_LABELS = {
    "cz_pickup": "Zásilkovna - výdejní místo (CZ)",
    "cz_home": "Doručení na adresu (CZ)",
    "sk_pickup": "Zásilkovna - výdejní místo (SK)",
    "sk_home": "Doručení na adresu (SK)",
}


def _fulfillment_lines(order: Order) -> list[str]:
    lines = [f"Doprava: {SHIPPING_LABELS.get(order.shipping.value, order.shipping.value)}"]
    if order.pickup_point is not None:
        point = order.pickup_point
        lines.append(f"Výdejní místo: {point.name or point.point_id} (ID {point.point_id})")
        if point.address:
            lines.append(f"Adresa výdejního místa: {point.address}")
    elif order.address is not None:
        a = order.address
        lines.append(f"Adresa: {a.street}, {a.zip} {a.city}, {a.country}")
    return lines


def _item_lines(order: Order) -> list[str]:
    if not order.items:
        return ["(položky nejsou k dispozici)"]
    lines = []
    for item in order.items:
        name = f"{item.name} ({item.variant})" if item.variant else item.name
        lines.append(f"{item.qty}x {name} - {format_czk(to_minor_units(item.line_total_czk))}")
    return lines


def _render(title: str, sections: list[list[str]]) -> tuple[str, str]:
    text = "\n\n".join([title] + ["\n".join(s) for s in sections])
    html_sections = "".join(
        "<p>" + "<br>".join(escape(line) for line in section) + "</p>"
        for section in sections
    )
    html = f"<h2>{escape(title)}</h2>{html_sections}"
    return html, text


def owner_message(order: Order, owner_email: str) -> EmailMessage:
    """Full order detail for the shop owner."""
    c = order.customer
    customer = [f"Zákazník: {c.full_name}", f"E-mail: {c.email}"]
    if c.phone:
        customer.append(f"Telefon: {c.phone}")
    payment = [
        f"Celkem: {format_czk(order.price_halers)}",
        f"refId: {order.ref_id}",
        f"transId: {order.transaction_id}",
    ]
    title = f"Nová zaplacená objednávka {order.ref_id}"
    html, text = _render(title, [customer, _fulfillment_lines(order), _item_lines(order), payment])
    return EmailMessage(to=owner_email, subject=title, html=html, text=text)


def customer_message(order: Order) -> EmailMessage:
    greeting = [
        f"Dobrý den, {order.customer.full_name},",
        "děkujeme za Váš nákup. Platba byla přijata a objednávku připravujeme k odeslání.",
    ]
    summary = [f"Celkem zaplaceno: {format_czk(order.price_halers)}", f"Číslo objednávky: {order.ref_id}"]
    title = f"Potvrzení objednávky {order.ref_id}"
    html, text = _render(title, [greeting, _item_lines(order), _fulfillment_lines(order), summary])
    return EmailMessage(to=order.customer.email, subject=title, html=html, text=text)
