"""Shared pytest fixtures."""

import logging

import pytest

from order_dispatch.dispatch import DispatchWorker, JobQueue, RetryPolicy
from order_dispatch.logging.context import clear_log_context

from tests.helpers import RecordingSender


@pytest.fixture(autouse=True)
def isolate_logging():
    """Restore root logger handlers and level and reset log context after each test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    clear_log_context()
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    clear_log_context()


@pytest.fixture
def job_queue():
    return JobQueue()


@pytest.fixture
def fast_policy():
    """Retry policy with short timings so threaded tests finish quickly."""
    return RetryPolicy(
        max_attempts=3,
        retry_delay=0.05,
        idle_interval=0.01,
        error_cooldown=0.02,
        startup_delay=0.0,
    )


@pytest.fixture
def recording_sender():
    return RecordingSender()


@pytest.fixture
def worker_factory(job_queue, fast_policy):
    """Build workers on the shared queue and make sure none outlive the test."""
    workers = []

    def _build(sender, policy=None, queue=None):
        worker = DispatchWorker(
            queue if queue is not None else job_queue, sender, policy or fast_policy
        )
        workers.append(worker)
        return worker

    yield _build

    for worker in workers:
        worker.stop(timeout=5)
