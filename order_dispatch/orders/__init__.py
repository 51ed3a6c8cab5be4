"""Order side of the notification pipeline.

- OrderNotifier: called after checkout commits an order; enqueues one job per recipient
- TemplateRenderer: Jinja2 rendering of subjects and bodies
- build_order_context: template variables for an order
"""

from .notifier import OrderNotifier
from .payloads import build_order_context, format_money
from .templates import (
    ADMIN_ALERT,
    CUSTOMER_CONFIRMATION,
    NotificationTemplateError,
    TemplateRenderer,
)

__all__ = [
    "OrderNotifier",
    "TemplateRenderer",
    "NotificationTemplateError",
    "build_order_context",
    "format_money",
    "CUSTOMER_CONFIRMATION",
    "ADMIN_ALERT",
]
