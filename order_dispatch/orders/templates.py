"""Template rendering for order notification emails using Jinja2.

Rendering happens once, in the producer, before a job is enqueued; the
dispatch queue only ever sees the finished strings.
"""

import logging
from typing import Dict

from jinja2 import (
    Environment,
    PackageLoader,
    StrictUndefined,
    TemplateError,
    select_autoescape,
)

from order_dispatch.senders.exceptions import NotificationError

logger = logging.getLogger(__name__)

CUSTOMER_CONFIRMATION = "customer_confirmation"
ADMIN_ALERT = "admin_alert"


class NotificationTemplateError(NotificationError):
    """Raised when template rendering fails due to configuration or missing variables."""

    pass


class TemplateRenderer:
    """Renders subject and body of each notification kind.

    Templates live in ``order_dispatch/orders/email_templates`` and follow
    the naming ``{kind}_subject.j2`` and ``{kind}_body.{html,txt}.j2``.
    Templates are cached by Jinja2 after the first load.
    """

    def __init__(self, template_dir: str = "email_templates"):
        """
        Args:
            template_dir: Directory name within the order_dispatch.orders package
        """
        self.env = Environment(
            loader=PackageLoader("order_dispatch.orders", template_dir),
            # Only HTML bodies are escaped; subjects and plain bodies are text
            autoescape=select_autoescape(enabled_extensions=("html.j2",), default=False),
            undefined=StrictUndefined,
        )

    def render(self, kind: str, context: Dict, body_subtype: str = "html") -> Dict[str, str]:
        """Render the subject and body for one notification kind.

        Args:
            kind: Notification kind, e.g. "customer_confirmation"
            context: Template variables
            body_subtype: "html" or "plain"

        Returns:
            Dictionary with "subject" (single line) and "body"

        Raises:
            NotificationTemplateError: If a template is missing or rendering fails
        """
        extension = "html" if body_subtype == "html" else "txt"
        try:
            subject_template = self.env.get_template(f"{kind}_subject.j2")
            body_template = self.env.get_template(f"{kind}_body.{extension}.j2")

            subject = " ".join(subject_template.render(context).split())
            body = body_template.render(context)
        except TemplateError as e:
            error_msg = f"Template rendering failed for {kind}: {e}"
            logger.error(error_msg, exc_info=True)
            raise NotificationTemplateError(error_msg) from e

        logger.debug(f"Rendered {kind} templates for order {context.get('order_id', 'unknown')}")

        return {"subject": subject, "body": body}
