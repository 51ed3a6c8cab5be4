"""Thread-safe FIFO of pending notification jobs.

Producers (checkout request threads) enqueue; the single dispatch worker
polls. Synchronization is internal to the queue, callers never lock.
"""

import queue
import threading
from typing import Optional

from order_dispatch.domain.models import NotificationJob
from order_dispatch.logging import get_logger

logger = get_logger(__name__, component="queue")


class JobQueue:
    """Unbounded, non-blocking job queue.

    There is no capacity bound, no priority and no deduplication: every
    enqueued job is delivered to the consumer in FIFO order.
    """

    def __init__(self) -> None:
        self._jobs: "queue.SimpleQueue[NotificationJob]" = queue.SimpleQueue()
        self._count_lock = threading.Lock()
        self._total_enqueued = 0

    def enqueue(self, job: NotificationJob) -> None:
        """Add a job at the tail. Never blocks and never fails."""
        self._jobs.put(job)
        with self._count_lock:
            self._total_enqueued += 1

        logger.debug(
            f"Queued {job.kind} notification for {job.correlation_id}",
            extra={
                "event": "queue.enqueued",
                "attempt_count": job.attempt_count,
                **job.log_fields(),
            },
        )

    def try_dequeue(self) -> Optional[NotificationJob]:
        """Pop the job at the head, or return None when the queue is empty."""
        try:
            return self._jobs.get_nowait()
        except queue.Empty:
            return None

    def enqueue_notification(
        self,
        recipient: str,
        subject: str,
        body: str,
        correlation_id: str,
        *,
        display_name: str = "",
        kind: str = "notification",
        body_subtype: str = "html",
    ) -> NotificationJob:
        """Build a job from already-rendered content and enqueue it.

        This is the call the order finalizer makes once per recipient, after
        the order is committed. Content is captured as-is; the queue never
        re-renders it.

        Returns:
            The enqueued job
        """
        job = NotificationJob(
            recipient_address=str(recipient),
            recipient_display_name=str(display_name),
            subject=str(subject),
            rendered_body=str(body),
            correlation_id=str(correlation_id),
            kind=kind,
            body_subtype=body_subtype,
        )
        logger.info(
            f"Notification enqueued for {correlation_id} ({kind})",
            extra={"event": "notification.enqueued", **job.log_fields()},
        )
        self.enqueue(job)
        return job

    def pending_count(self) -> int:
        """Approximate number of queued jobs."""
        return self._jobs.qsize()

    def is_empty(self) -> bool:
        return self._jobs.empty()

    @property
    def total_enqueued(self) -> int:
        """Total enqueue operations, re-enqueued retries included."""
        return self._total_enqueued

    def __len__(self) -> int:
        return self.pending_count()
