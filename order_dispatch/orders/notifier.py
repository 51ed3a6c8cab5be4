"""Hand-off point between checkout and the dispatch queue."""

import logging
from typing import List, Optional, Sequence

from order_dispatch.config.models import StoreConfig
from order_dispatch.dispatch.job_queue import JobQueue
from order_dispatch.domain.models import NotificationJob, OrderPlaced
from order_dispatch.logging import get_logger
from order_dispatch.logging.context import log_context

from .payloads import build_order_context
from .templates import ADMIN_ALERT, CUSTOMER_CONFIRMATION, TemplateRenderer

logger = get_logger(__name__, component="orders")


class OrderNotifier:
    """Turns a committed order into queued notification jobs.

    Called by the checkout flow once the order record is durably saved. It
    renders one email per recipient (the customer, then each admin address)
    and enqueues them, returning before any network I/O happens. Nothing
    raised while preparing notifications reaches the checkout caller: the
    order is placed regardless of what happens to its emails.
    """

    def __init__(
        self,
        job_queue: JobQueue,
        renderer: Optional[TemplateRenderer] = None,
        store_config: Optional[StoreConfig] = None,
        admin_recipients: Sequence[str] = (),
        body_subtype: str = "html",
        logger_instance: Optional[logging.Logger] = None,
    ):
        """
        Args:
            job_queue: Queue shared with the dispatch worker
            renderer: Template renderer (creates default if None)
            store_config: Store name, currency and subject prefixes
            admin_recipients: Addresses that receive a new-order alert
            body_subtype: "html" or "plain" bodies
            logger_instance: Logger instance (uses module logger if None)
        """
        self.job_queue = job_queue
        self.renderer = renderer or TemplateRenderer()
        self.store_config = store_config or StoreConfig()
        self.admin_recipients = list(admin_recipients)
        self.body_subtype = body_subtype
        self.logger = logger_instance or logger

    def notify_order_placed(self, order: OrderPlaced) -> List[NotificationJob]:
        """Enqueue the customer confirmation and admin alerts for an order.

        Args:
            order: The committed order

        Returns:
            The jobs that were enqueued (fewer than expected if rendering failed)
        """
        correlation_id = order.correlation_id
        jobs: List[NotificationJob] = []

        with log_context(correlation_id=correlation_id):
            try:
                context = build_order_context(order, self.store_config)
            except Exception as e:
                self.logger.error(
                    f"Failed to build notification context for order {order.order_id}: {e}",
                    exc_info=True,
                    extra={"event": "orders.notify.context_failed"},
                )
                return jobs

            recipients = [(CUSTOMER_CONFIRMATION, str(order.customer_email), order.customer_name)]
            recipients.extend((ADMIN_ALERT, address, "Admin") for address in self.admin_recipients)

            for kind, address, display_name in recipients:
                job = self._enqueue(kind, address, display_name, context, correlation_id)
                if job is not None:
                    jobs.append(job)

            self.logger.info(
                f"Order {order.order_id} queued {len(jobs)} notification(s)",
                extra={
                    "event": "orders.notify.queued",
                    "job_count": len(jobs),
                    "expected_count": len(recipients),
                    "pending": self.job_queue.pending_count(),
                },
            )

        return jobs

    def _enqueue(
        self, kind: str, address: str, display_name: str, context: dict, correlation_id: str
    ) -> Optional[NotificationJob]:
        try:
            rendered = self.renderer.render(kind, context, body_subtype=self.body_subtype)
        except Exception as e:
            self.logger.error(
                f"Skipping {kind} for {correlation_id}: {e}",
                exc_info=True,
                extra={"event": "orders.notify.render_failed", "notification_kind": kind},
            )
            return None

        return self.job_queue.enqueue_notification(
            address,
            rendered["subject"],
            rendered["body"],
            correlation_id,
            display_name=display_name,
            kind=kind,
            body_subtype=self.body_subtype,
        )
