"""Template context for order notification emails."""

from decimal import Decimal
from typing import Dict

from order_dispatch.config.models import StoreConfig
from order_dispatch.domain.models import OrderPlaced


def format_money(amount: Decimal) -> str:
    """Format an amount with thousands separators and two decimals."""
    return f"{amount:,.2f}"


def build_order_context(order: OrderPlaced, store_config: StoreConfig) -> Dict:
    """Build the template context for an order's notifications.

    Every value is a plain string, number or list of dicts, so rendered
    content never holds references back into the order object.

    Args:
        order: The committed order
        store_config: Store identity and subject prefixes

    Returns:
        Dictionary with the keys used by the email templates:
        - order_id, tracking_id, placed_at
        - customer_name, customer_email, phone, address, landmark
        - payment_method, total_amount, currency
        - items: list of {product_id, name, size, quantity, line_total}
        - store_name, confirmation_subject_prefix, admin_subject_prefix
    """
    return {
        "order_id": order.order_id,
        "tracking_id": order.tracking_id,
        "placed_at": order.placed_at.strftime("%Y-%m-%d %H:%M UTC"),
        "customer_name": order.customer_name,
        "customer_email": str(order.customer_email),
        "phone": order.phone,
        "address": order.address,
        "landmark": order.landmark or "",
        "payment_method": order.payment_method,
        "total_amount": format_money(order.total_amount),
        "currency": store_config.currency,
        "items": [
            {
                "product_id": line.product_id,
                "name": line.name,
                "size": line.size or "",
                "quantity": line.quantity,
                "line_total": format_money(line.line_total),
            }
            for line in order.items
        ],
        "store_name": store_config.name,
        "confirmation_subject_prefix": store_config.confirmation_subject_prefix,
        "admin_subject_prefix": store_config.admin_subject_prefix,
    }
