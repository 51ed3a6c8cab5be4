"""Unit tests for the dispatch worker.

Tests the DispatchWorker for:
- Delivery of queued jobs and FIFO order
- Retry at the tail of the queue with a fixed delay
- Dropping after max_attempts
- Isolation of sender exceptions and loop errors
- Single in-flight delivery
- Prompt shutdown from every sleep, and drain-on-stop
- Structured lifecycle log events
"""

import logging
import threading
import time

import pytest

from order_dispatch.config.models import DispatchConfig
from order_dispatch.dispatch import (
    DispatchWorker,
    JobQueue,
    RetryPolicy,
    WorkerStateError,
)
from order_dispatch.domain.models import SendResult
from order_dispatch.logging.config import ContextualFilter

from tests.helpers import (
    ConcurrencyProbeSender,
    RaisingSender,
    RecordingSender,
    ScriptedSender,
    make_job,
)


def sync_policy(**overrides):
    """Policy with zero delays, for driving run_cycle() by hand."""
    values = {"max_attempts": 3, "retry_delay": 0.0, "idle_interval": 0.0, "error_cooldown": 0.0}
    values.update(overrides)
    return RetryPolicy(**values)


def drive(worker, max_cycles=50):
    """Call run_cycle until the queue is empty."""
    for _ in range(max_cycles):
        if not worker.run_cycle():
            return
    raise AssertionError("queue did not drain")


def events(caplog, name=None):
    found = [getattr(r, "event", None) for r in caplog.records if hasattr(r, "event")]
    if name is None:
        return found
    return [e for e in found if e == name]


class TestRetryPolicy:
    """Tests for RetryPolicy."""

    def test_defaults(self):
        policy = RetryPolicy()

        assert policy.max_attempts == 3
        assert policy.retry_delay == 5.0
        assert policy.idle_interval == 2.0
        assert policy.error_cooldown == 5.0

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError, match="max_attempts"):
            RetryPolicy(max_attempts=0)

    def test_rejects_negative_interval(self):
        with pytest.raises(ValueError, match="negative"):
            RetryPolicy(retry_delay=-1)

    def test_from_config(self):
        config = DispatchConfig(max_attempts=5, retry_delay="10s", idle_interval="500ms")

        policy = RetryPolicy.from_config(config)

        assert policy.max_attempts == 5
        assert policy.retry_delay == 10.0
        assert policy.idle_interval == 0.5
        assert policy.startup_delay == 3.0

    def test_should_retry(self):
        policy = RetryPolicy(max_attempts=2)
        job = make_job()

        job.record_failure()
        assert policy.should_retry(job) is True

        job.record_failure()
        assert policy.should_retry(job) is False


class TestRunCycle:
    """Deterministic tests driving run_cycle() without a thread."""

    def test_empty_queue_returns_false(self, job_queue):
        worker = DispatchWorker(job_queue, RecordingSender(), sync_policy())

        assert worker.run_cycle() is False

    def test_successful_send_consumes_job(self, job_queue):
        sender = RecordingSender()
        worker = DispatchWorker(job_queue, sender, sync_policy())
        job = make_job("order-1")
        job_queue.enqueue(job)

        assert worker.run_cycle() is True

        assert job_queue.is_empty()
        assert sender.trace() == ["order-11:ok"]
        assert job.attempt_count == 0
        assert worker.stats.sent == 1

    def test_fifo_order(self, job_queue):
        sender = RecordingSender()
        worker = DispatchWorker(job_queue, sender, sync_policy())
        for name in ("order-A", "order-B", "order-C"):
            job_queue.enqueue(make_job(name))

        drive(worker)

        assert [a.correlation_id for a in sender.attempts] == ["order-A", "order-B", "order-C"]

    def test_transient_failure_then_success(self, job_queue):
        sender = ScriptedSender({"order-1": [False, True]})
        worker = DispatchWorker(job_queue, sender, sync_policy())
        job = make_job("order-1")
        job_queue.enqueue(job)

        drive(worker)

        assert sender.trace() == ["order-11:fail", "order-12:ok"]
        assert job.attempt_count == 1
        stats = worker.stats
        assert stats.sent == 1
        assert stats.failed_attempts == 1
        assert stats.retried == 1
        assert stats.dropped == 0

    def test_persistent_failure_is_dropped_after_max_attempts(self, job_queue):
        sender = ScriptedSender({"order-1": [False]})
        worker = DispatchWorker(job_queue, sender, sync_policy())
        job = make_job("order-1")
        job_queue.enqueue(job)

        drive(worker)

        assert sender.trace() == ["order-11:fail", "order-12:fail", "order-13:fail"]
        assert job.attempt_count == 3
        assert job_queue.is_empty()
        assert worker.stats.dropped == 1
        assert worker.stats.retried == 2

    def test_single_attempt_policy_drops_immediately(self, job_queue):
        sender = ScriptedSender({"order-1": [False]})
        worker = DispatchWorker(job_queue, sender, sync_policy(max_attempts=1))
        job_queue.enqueue(make_job("order-1"))

        drive(worker)

        assert sender.trace() == ["order-11:fail"]
        assert worker.stats.dropped == 1
        assert worker.stats.retried == 0

    def test_retry_goes_to_tail_behind_other_jobs(self, job_queue):
        """A fails permanently, B succeeds: B is delivered between A's attempts."""
        sender = ScriptedSender({"order-A": [False]})
        worker = DispatchWorker(job_queue, sender, sync_policy())
        job_queue.enqueue(make_job("order-A"))
        job_queue.enqueue(make_job("order-B"))

        drive(worker)

        assert sender.trace() == [
            "order-A1:fail",
            "order-B1:ok",
            "order-A2:fail",
            "order-A3:fail",
        ]
        assert worker.stats.sent == 1
        assert worker.stats.dropped == 1

    def test_retried_job_keeps_content(self, job_queue):
        sender = ScriptedSender({"order-1": [False, True]})
        worker = DispatchWorker(job_queue, sender, sync_policy())
        job = make_job("order-1", subject="Order Confirmed - #1", rendered_body="<p>hi</p>")
        job_queue.enqueue(job)

        worker.run_cycle()
        requeued = job_queue.try_dequeue()

        assert requeued is job
        assert requeued.subject == "Order Confirmed - #1"
        assert requeued.rendered_body == "<p>hi</p>"
        assert requeued.attempt_count == 1

    def test_sender_exception_counts_as_failed_attempt(self, job_queue):
        sender = RaisingSender(raise_for=lambda job: job.correlation_id == "order-A")
        worker = DispatchWorker(job_queue, sender, sync_policy())
        job_a = make_job("order-A")
        job_queue.enqueue(job_a)
        job_queue.enqueue(make_job("order-B"))

        drive(worker)

        assert job_a.attempt_count == 3
        assert [a.correlation_id for a in sender.attempts if a.success] == ["order-B"]
        assert worker.stats.dropped == 1
        assert worker.stats.loop_errors == 0

    def test_retries_are_independent_per_recipient(self, job_queue):
        """Two jobs of the same order are retried separately."""
        sender = ScriptedSender()
        sender.decide = lambda job: (
            SendResult.failed("mailbox full")
            if job.recipient_address == "admin@example.com"
            else SendResult.ok()
        )
        worker = DispatchWorker(job_queue, sender, sync_policy())
        customer = make_job("order-7", recipient_address="ayesha@example.com")
        admin = make_job("order-7", recipient_address="admin@example.com")
        job_queue.enqueue(customer)
        job_queue.enqueue(admin)

        drive(worker)

        assert customer.attempt_count == 0
        assert admin.attempt_count == 3
        assert worker.stats.sent == 1
        assert worker.stats.dropped == 1


class TestLogging:
    """Tests for structured lifecycle log records."""

    def test_success_events_carry_job_identity(self, job_queue, caplog):
        caplog.handler.addFilter(ContextualFilter())
        caplog.set_level(logging.DEBUG)
        worker = DispatchWorker(job_queue, RecordingSender(), sync_policy())
        job = job_queue.enqueue_notification(
            "ayesha@example.com", "Order Confirmed", "<p>hi</p>", "order-9"
        )

        worker.run_cycle()

        success = [r for r in caplog.records if getattr(r, "event", None) == "dispatch.send.success"]
        assert len(success) == 1
        assert success[0].job_id == job.job_id
        assert success[0].correlation_id == "order-9"
        assert success[0].attempt == 1
        assert success[0].max_attempts == 3

    def test_retry_and_drop_events(self, job_queue, caplog):
        caplog.set_level(logging.INFO)
        worker = DispatchWorker(job_queue, ScriptedSender({"order-1": [False]}), sync_policy())
        job_queue.enqueue(make_job("order-1"))

        drive(worker)

        assert len(events(caplog, "dispatch.send.attempt")) == 3
        assert len(events(caplog, "dispatch.send.failure")) == 2
        assert len(events(caplog, "dispatch.retry.scheduled")) == 2
        assert len(events(caplog, "dispatch.send.dropped")) == 1

        dropped = [r for r in caplog.records if getattr(r, "event", None) == "dispatch.send.dropped"]
        assert dropped[0].levelno == logging.ERROR
        assert dropped[0].reason == "scripted failure"

    def test_failure_record_includes_attempt_numbers(self, job_queue, caplog):
        caplog.set_level(logging.INFO)
        worker = DispatchWorker(job_queue, ScriptedSender({"order-1": [False, True]}), sync_policy())
        job_queue.enqueue(make_job("order-1"))

        drive(worker)

        failure = [r for r in caplog.records if getattr(r, "event", None) == "dispatch.send.failure"]
        assert failure[0].attempt == 1
        assert failure[0].max_attempts == 3
        assert failure[0].levelno == logging.WARNING


class TestWorkerThread:
    """Tests for the background thread lifecycle."""

    def test_delivers_jobs_enqueued_after_start(self, job_queue, worker_factory, recording_sender):
        worker = worker_factory(recording_sender)
        worker.start()

        job_queue.enqueue(make_job("order-1"))

        assert recording_sender.delivered.wait(timeout=5)
        assert worker.is_running()
        assert worker.stop(timeout=5) is True
        assert not worker.is_running()

    def test_thread_is_not_daemon(self, worker_factory, recording_sender):
        worker = worker_factory(recording_sender)
        worker.start()

        assert worker._thread.daemon is False
        assert worker._thread.name == "notification-dispatch"

    def test_start_twice_raises(self, worker_factory, recording_sender):
        worker = worker_factory(recording_sender)
        worker.start()

        with pytest.raises(WorkerStateError):
            worker.start()

    def test_stop_without_start(self, worker_factory, recording_sender):
        worker = worker_factory(recording_sender)

        assert worker.stop(timeout=1) is True

    def test_restart_after_stop(self, job_queue, worker_factory, recording_sender):
        worker = worker_factory(recording_sender)
        worker.start()
        worker.stop(timeout=5)

        worker.start()
        job_queue.enqueue(make_job("order-2"))

        assert recording_sender.wait_for_attempts(1)

    def test_retry_delay_spacing(self, job_queue, worker_factory):
        sender = ScriptedSender({"order-1": [False, False, True]})
        policy = RetryPolicy(max_attempts=3, retry_delay=0.1, idle_interval=0.01)
        worker = worker_factory(sender, policy=policy)
        job_queue.enqueue(make_job("order-1"))
        worker.start()

        assert sender.delivered.wait(timeout=5)
        times = [a.at for a in sender.attempts_for("order-1")]

        assert len(times) == 3
        # Fixed delay: no exponential growth
        assert times[1] - times[0] >= 0.09
        assert times[2] - times[1] >= 0.09
        assert times[2] - times[1] < 0.5

    def test_scenario_trace_with_thread(self, job_queue, worker_factory):
        sender = ScriptedSender({"order-A": [False]})
        worker = worker_factory(sender)
        job_queue.enqueue(make_job("order-A"))
        job_queue.enqueue(make_job("order-B"))
        worker.start()

        assert sender.wait_for_attempts(4)
        worker.stop(timeout=5)

        assert sender.trace() == [
            "order-A1:fail",
            "order-B1:ok",
            "order-A2:fail",
            "order-A3:fail",
        ]
        assert worker.stats.dropped == 1

    def test_at_most_one_send_in_flight(self, job_queue, worker_factory):
        sender = ConcurrencyProbeSender(hold_seconds=0.005)
        worker = worker_factory(sender)
        worker.start()

        def produce(prefix):
            for i in range(10):
                job_queue.enqueue(make_job(f"order-{prefix}{i}"))

        producers = [threading.Thread(target=produce, args=(p,)) for p in "abcd"]
        for producer in producers:
            producer.start()
        for producer in producers:
            producer.join()

        assert sender.wait_for_attempts(40, timeout=10)
        assert sender.max_in_flight == 1
        assert worker.stats.sent == 40

    def test_enqueue_does_not_wait_for_slow_sender(self, job_queue, worker_factory):
        sender = ConcurrencyProbeSender(hold_seconds=0.5)
        worker = worker_factory(sender)
        job_queue.enqueue(make_job("order-slow"))
        worker.start()
        time.sleep(0.05)

        started = time.monotonic()
        job_queue.enqueue(make_job("order-fast"))

        assert time.monotonic() - started < 0.1

    def test_loop_error_is_logged_and_worker_continues(self, worker_factory, caplog):
        caplog.set_level(logging.ERROR)

        class FlakyQueue(JobQueue):
            def __init__(self):
                super().__init__()
                self.failures = 1

            def try_dequeue(self):
                if self.failures:
                    self.failures -= 1
                    raise RuntimeError("queue hiccup")
                return super().try_dequeue()

        flaky_queue = FlakyQueue()
        sender = RecordingSender()
        worker = worker_factory(sender, queue=flaky_queue)
        flaky_queue.enqueue(make_job("order-1"))
        worker.start()

        assert sender.delivered.wait(timeout=5)
        assert worker.stats.loop_errors == 1
        assert "worker.loop.error" in events(caplog)


class TestShutdown:
    """Tests for prompt shutdown and drain-on-stop."""

    def test_stop_interrupts_idle_wait(self, worker_factory, recording_sender):
        worker = worker_factory(recording_sender, policy=RetryPolicy(idle_interval=30))
        worker.start()
        time.sleep(0.05)

        started = time.monotonic()
        assert worker.stop(timeout=5) is True
        assert time.monotonic() - started < 1.0

    def test_stop_interrupts_startup_delay(self, job_queue, worker_factory, recording_sender):
        worker = worker_factory(recording_sender, policy=RetryPolicy(startup_delay=30))
        job_queue.enqueue(make_job("order-1"))
        worker.start()

        started = time.monotonic()
        assert worker.stop(timeout=5) is True
        assert time.monotonic() - started < 1.0
        assert recording_sender.attempts == []

    def test_stop_interrupts_retry_delay_and_keeps_job(self, job_queue, worker_factory):
        sender = ScriptedSender({"order-1": [False]})
        worker = worker_factory(sender, policy=RetryPolicy(retry_delay=30, idle_interval=0.01))
        job = make_job("order-1")
        job_queue.enqueue(job)
        worker.start()
        assert sender.wait_for_attempts(1)
        time.sleep(0.05)

        started = time.monotonic()
        assert worker.stop(timeout=5) is True
        assert time.monotonic() - started < 1.0

        assert job_queue.try_dequeue() is job
        assert job.attempt_count == 1

    def test_stop_returns_false_when_sender_hangs(self, job_queue, worker_factory):
        release = threading.Event()

        class HangingSender(RecordingSender):
            def send(self, job):
                release.wait(5)
                return super().send(job)

        worker = worker_factory(HangingSender())
        job_queue.enqueue(make_job("order-1"))
        worker.start()
        time.sleep(0.05)

        assert worker.stop(timeout=0.1) is False
        release.set()
        assert worker.stop(timeout=5) is True

    def test_drain_delivers_everything_before_stopping(self, job_queue, worker_factory, caplog):
        caplog.set_level(logging.INFO)
        sender = RecordingSender()
        worker = worker_factory(sender, policy=RetryPolicy(idle_interval=30, retry_delay=0.01))
        for i in range(5):
            job_queue.enqueue(make_job(f"order-{i}"))
        worker.start()

        assert worker.stop(timeout=5, drain=True) is True

        assert len(sender.attempts) == 5
        assert job_queue.is_empty()
        assert "worker.drained" in events(caplog)

    def test_drain_waits_for_retries(self, job_queue, worker_factory):
        sender = ScriptedSender({"order-1": [False, True]})
        worker = worker_factory(sender, policy=RetryPolicy(retry_delay=0.02, idle_interval=30))
        job_queue.enqueue(make_job("order-1"))
        worker.start()

        assert worker.stop(timeout=5, drain=True) is True
        assert sender.trace() == ["order-11:fail", "order-12:ok"]

    def test_lifecycle_events(self, worker_factory, recording_sender, caplog):
        caplog.set_level(logging.INFO)
        worker = worker_factory(recording_sender)

        worker.start()
        worker.stop(timeout=5)

        found = events(caplog)
        assert "worker.started" in found
        assert "worker.stopping" in found
        assert "worker.stopped" in found
