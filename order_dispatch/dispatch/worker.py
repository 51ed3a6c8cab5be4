"""Background worker that drains the job queue and delivers notifications.

Exactly one worker thread consumes the queue, so at most one notification is
being sent at any instant and no per-job locking is needed. Every sleep the
worker takes is an event wait that stop() interrupts, so a stop request is
observed at the top of each cycle and inside every sleep.
"""

import threading
import time
from dataclasses import dataclass, replace
from typing import Optional

from order_dispatch.config.models import DispatchConfig
from order_dispatch.domain.models import NotificationJob, SendResult
from order_dispatch.logging import get_logger
from order_dispatch.logging.context import log_context
from order_dispatch.senders.base import NotificationSender
from order_dispatch.utils.timestamps import format_timestamp_for_log, seconds_since

from .job_queue import JobQueue
from .models import DispatchStats, WorkerStateError

logger = get_logger(__name__, component="worker")


@dataclass(frozen=True)
class RetryPolicy:
    """Polling and retry timings of the dispatch worker (seconds).

    Attributes:
        max_attempts: Send attempts per job before it is dropped
        retry_delay: Fixed delay before a failed job is re-enqueued (no exponential growth)
        idle_interval: Wait between polls of an empty queue
        error_cooldown: Pause after an unexpected error in the loop
        startup_delay: Wait before the first poll
    """

    max_attempts: int = 3
    retry_delay: float = 5.0
    idle_interval: float = 2.0
    error_cooldown: float = 5.0
    startup_delay: float = 0.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if min(self.retry_delay, self.idle_interval, self.error_cooldown, self.startup_delay) < 0:
            raise ValueError("RetryPolicy intervals cannot be negative")

    @classmethod
    def from_config(cls, config: DispatchConfig) -> "RetryPolicy":
        return cls(
            max_attempts=config.max_attempts,
            retry_delay=config.retry_delay_seconds,
            idle_interval=config.idle_interval_seconds,
            error_cooldown=config.error_cooldown_seconds,
            startup_delay=config.startup_delay_seconds,
        )

    def should_retry(self, job: NotificationJob) -> bool:
        return job.has_attempts_remaining(self.max_attempts)


class DispatchWorker:
    """Single long-lived consumer of a JobQueue.

    Per cycle: poll the queue; if empty, wait ``idle_interval``. Otherwise
    send the job once. On failure the attempt count is incremented and the
    job is re-enqueued at the tail after ``retry_delay``, until
    ``max_attempts`` is reached and the job is dropped. Unexpected errors are
    logged and followed by ``error_cooldown``; they never end the loop.
    """

    def __init__(
        self,
        job_queue: JobQueue,
        sender: NotificationSender,
        policy: Optional[RetryPolicy] = None,
        name: str = "notification-dispatch",
    ):
        """
        Args:
            job_queue: Queue shared with the producers
            sender: Channel used for each delivery attempt
            policy: Retry and polling timings (defaults to RetryPolicy())
            name: Thread name
        """
        self.job_queue = job_queue
        self.sender = sender
        self.policy = policy or RetryPolicy()
        self.name = name

        self._shutdown = threading.Event()
        self._drain = threading.Event()
        self._wake = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._stats = DispatchStats()
        self._stats_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Spawn the worker thread.

        Raises:
            WorkerStateError: If the worker is already running
        """
        if self.is_running():
            raise WorkerStateError(f"Worker '{self.name}' is already running")

        self._shutdown.clear()
        self._drain.clear()
        self._wake.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=False)
        self._thread.start()

        logger.info(
            "Dispatch worker started",
            extra={
                "event": "worker.started",
                "channel": self.sender.channel,
                "max_attempts": self.policy.max_attempts,
                "retry_delay_seconds": self.policy.retry_delay,
                "idle_interval_seconds": self.policy.idle_interval,
            },
        )

    def stop(self, timeout: Optional[float] = None, drain: bool = False) -> bool:
        """Signal the worker to stop and wait for its thread.

        Args:
            timeout: Upper bound on the total wait, in seconds (None = no bound)
            drain: Keep processing until the queue is empty before stopping

        Returns:
            True if the worker thread has exited
        """
        thread = self._thread
        if thread is None:
            return True

        deadline = None if timeout is None else time.monotonic() + timeout

        logger.info(
            "Stopping dispatch worker",
            extra={
                "event": "worker.stopping",
                "drain": drain,
                "pending": self.job_queue.pending_count(),
            },
        )

        if drain:
            self._drain.set()
            self._wake.set()
            thread.join(self._remaining(deadline))

        self._shutdown.set()
        self._wake.set()
        thread.join(self._remaining(deadline))

        stopped = not thread.is_alive()
        if stopped:
            self._thread = None
        else:
            logger.warning(
                "Dispatch worker did not stop within timeout",
                extra={"event": "worker.stop.timeout", "timeout_seconds": timeout},
            )
        return stopped

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def stats(self) -> DispatchStats:
        """Snapshot of the worker's counters."""
        with self._stats_lock:
            return replace(self._stats)

    @staticmethod
    def _remaining(deadline: Optional[float]) -> Optional[float]:
        if deadline is None:
            return None
        return max(deadline - time.monotonic(), 0.0)

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def _run(self) -> None:
        if self.policy.startup_delay and self._sleep(self.policy.startup_delay):
            self._log_stopped()
            return

        while not self._shutdown.is_set():
            try:
                processed = self.run_cycle()
            except Exception as e:
                self._bump("loop_errors")
                logger.error(
                    f"Unexpected error in dispatch loop: {e}",
                    exc_info=True,
                    extra={
                        "event": "worker.loop.error",
                        "error_type": type(e).__name__,
                        "cooldown_seconds": self.policy.error_cooldown,
                    },
                )
                self._sleep(self.policy.error_cooldown)
                continue

            if not processed:
                if self._drain.is_set():
                    logger.info("Queue drained", extra={"event": "worker.drained"})
                    break
                self._wake.wait(self.policy.idle_interval)

        self._log_stopped()

    def run_cycle(self) -> bool:
        """Process at most one job.

        Returns:
            True if a job was dequeued, False if the queue was empty
        """
        job = self.job_queue.try_dequeue()
        if job is None:
            return False

        with log_context(**job.log_fields()):
            self._process(job)
        return True

    def _process(self, job: NotificationJob) -> None:
        attempt = job.attempt_count + 1
        max_attempts = self.policy.max_attempts

        logger.info(
            f"Sending {job.kind} for {job.correlation_id} (attempt {attempt}/{max_attempts})",
            extra={
                "event": "dispatch.send.attempt",
                "attempt": attempt,
                "max_attempts": max_attempts,
                "channel": self.sender.channel,
                "enqueued_at": format_timestamp_for_log(job.enqueued_at),
                "queued_seconds": seconds_since(job.enqueued_at),
            },
        )

        result = self._attempt(job)

        if result.success:
            self._bump("sent")
            logger.info(
                f"Notification delivered for {job.correlation_id} to {job.recipient_address}",
                extra={
                    "event": "dispatch.send.success",
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                    "recipient": job.recipient_address,
                },
            )
            return

        self._handle_failure(job, result)

    def _attempt(self, job: NotificationJob) -> SendResult:
        """Invoke the sender once; a sender that raises counts as a failed attempt."""
        try:
            return self.sender.send(job)
        except Exception as e:
            logger.error(
                f"Sender raised instead of reporting failure: {e}",
                exc_info=True,
                extra={"event": "dispatch.send.error", "error_type": type(e).__name__},
            )
            return SendResult.failed(f"{type(e).__name__}: {e}")

    def _handle_failure(self, job: NotificationJob, result: SendResult) -> None:
        attempt = job.record_failure()
        max_attempts = self.policy.max_attempts
        self._bump("failed_attempts")

        if not self.policy.should_retry(job):
            self._bump("dropped")
            logger.error(
                f"Giving up on {job.kind} for {job.correlation_id} after "
                f"{attempt} attempts: {result.reason}",
                extra={
                    "event": "dispatch.send.dropped",
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                    "recipient": job.recipient_address,
                    "reason": result.reason,
                },
            )
            return

        logger.warning(
            f"Delivery failed for {job.correlation_id} (attempt {attempt}/{max_attempts}): "
            f"{result.reason}",
            extra={
                "event": "dispatch.send.failure",
                "attempt": attempt,
                "max_attempts": max_attempts,
                "reason": result.reason,
                "retry_remaining": True,
                "retry_delay_seconds": self.policy.retry_delay,
            },
        )

        # Re-enqueued even when shutdown interrupts the delay
        interrupted = self._sleep(self.policy.retry_delay)
        self.job_queue.enqueue(job)
        self._bump("retried")

        logger.info(
            f"Retry queued for {job.correlation_id}",
            extra={
                "event": "dispatch.retry.scheduled",
                "next_attempt": attempt + 1,
                "max_attempts": max_attempts,
                "interrupted_by_shutdown": interrupted,
            },
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _sleep(self, seconds: float) -> bool:
        """Wait up to ``seconds``; return True if shutdown was requested."""
        return self._shutdown.wait(seconds)

    def _bump(self, counter: str) -> None:
        with self._stats_lock:
            setattr(self._stats, counter, getattr(self._stats, counter) + 1)

    def _log_stopped(self) -> None:
        stats = self.stats
        logger.info(
            "Dispatch worker stopped",
            extra={
                "event": "worker.stopped",
                "pending": self.job_queue.pending_count(),
                "sent": stats.sent,
                "dropped": stats.dropped,
                "failed_attempts": stats.failed_attempts,
                "loop_errors": stats.loop_errors,
            },
        )
