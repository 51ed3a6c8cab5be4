"""Process-level wiring of queue, worker and order notifier."""

import threading
from typing import Optional

from order_dispatch.config.environment import EnvironmentConfig
from order_dispatch.config.models import AppConfig
from order_dispatch.dispatch import DispatchWorker, JobQueue, RetryPolicy
from order_dispatch.logging import get_logger
from order_dispatch.orders import OrderNotifier, TemplateRenderer
from order_dispatch.senders import NotificationSender, build_sender

logger = get_logger(__name__, component="service")


class DispatchService:
    """
    Owns the queue, the dispatch worker and the order notifier.

    The queue instance is created here and handed to both the notifier
    (producer side) and the worker (consumer side); nothing is global, so
    several services can coexist, e.g. one per test.
    """

    def __init__(
        self,
        job_queue: JobQueue,
        worker: DispatchWorker,
        notifier: OrderNotifier,
        shutdown_timeout: Optional[float] = 30.0,
        shutdown_event: Optional[threading.Event] = None,
    ):
        """
        Args:
            job_queue: Queue shared by notifier and worker
            worker: The single consumer
            notifier: Entry point for committed orders
            shutdown_timeout: Default bound on how long shutdown waits for the worker
            shutdown_event: Optional event set once shutdown completes
        """
        self.job_queue = job_queue
        self.worker = worker
        self.notifier = notifier
        self.shutdown_timeout = shutdown_timeout
        self.shutdown_event = shutdown_event or threading.Event()
        self.stop_requested = threading.Event()
        self._shutdown_lock = threading.Lock()

    def start(self) -> None:
        """Start the background worker."""
        self.shutdown_event.clear()
        self.stop_requested.clear()
        self.worker.start()
        logger.info(
            "Dispatch service started",
            extra={"event": "service.started", "pending": self.job_queue.pending_count()},
        )

    def request_shutdown(self) -> None:
        """Ask the owner of the service to shut it down; never blocks.

        This is the only call a signal handler makes. The thread waiting on
        ``stop_requested`` performs the bounded :meth:`shutdown`.
        """
        if self.stop_requested.is_set():
            logger.info(
                "Shutdown already requested",
                extra={"event": "service.shutdown.repeat_request"},
            )
            return
        self.stop_requested.set()
        logger.info("Shutdown requested", extra={"event": "service.shutdown.requested"})

    def shutdown(self, drain: bool = False, timeout: Optional[float] = None) -> bool:
        """
        Stop the worker and signal shutdown_event.

        Safe to call more than once. A call made while another shutdown is
        still joining the worker returns at once instead of waiting for it.

        Args:
            drain: Deliver everything still queued before stopping
            timeout: Bound on the wait (defaults to shutdown_timeout)

        Returns:
            True if the worker thread has exited
        """
        if not self._shutdown_lock.acquire(blocking=False):
            logger.info(
                "Shutdown already in progress",
                extra={"event": "service.shutdown.in_progress"},
            )
            return not self.worker.is_running()

        try:
            self.stop_requested.set()
            wait = self.shutdown_timeout if timeout is None else timeout
            stopped = self.worker.stop(timeout=wait, drain=drain)

            pending = self.job_queue.pending_count()
            if pending:
                # No persistence: these notifications are lost with the process
                logger.warning(
                    f"{pending} notification(s) still queued at shutdown",
                    extra={"event": "service.shutdown.pending_lost", "pending": pending},
                )

            self.shutdown_event.set()
            logger.info(
                "Dispatch service stopped",
                extra={"event": "service.stopped", "worker_stopped": stopped},
            )
            return stopped
        finally:
            self._shutdown_lock.release()

    def is_running(self) -> bool:
        return self.worker.is_running()


def build_dispatch_service(
    app_config: AppConfig,
    env_config: EnvironmentConfig,
    sender: Optional[NotificationSender] = None,
    shutdown_event: Optional[threading.Event] = None,
) -> DispatchService:
    """
    Assemble a DispatchService from configuration.

    Args:
        app_config: Application configuration
        env_config: Environment configuration
        sender: Sender override (defaults to the channel from EMAIL_CHANNEL)
        shutdown_event: Optional event set once shutdown completes

    Returns:
        A service that has not been started yet
    """
    job_queue = JobQueue()
    sender = sender or build_sender(env_config, app_config.email)

    worker = DispatchWorker(
        job_queue=job_queue,
        sender=sender,
        policy=RetryPolicy.from_config(app_config.dispatch),
    )
    notifier = OrderNotifier(
        job_queue=job_queue,
        renderer=TemplateRenderer(),
        store_config=app_config.store,
        admin_recipients=env_config.admin_emails,
        body_subtype=app_config.email.body_subtype,
    )

    logger.info(
        "Services initialized",
        extra={
            "event": "services.initialized",
            "channel": sender.channel,
            "admin_recipient_count": len(env_config.admin_emails),
        },
    )

    return DispatchService(
        job_queue=job_queue,
        worker=worker,
        notifier=notifier,
        shutdown_timeout=app_config.dispatch.shutdown_timeout_seconds,
        shutdown_event=shutdown_event,
    )
