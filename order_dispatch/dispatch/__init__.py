"""Asynchronous dispatch of order notification emails.

- JobQueue: thread-safe FIFO shared by producers and the worker
- DispatchWorker: the single background consumer with bounded retries
- RetryPolicy: retry ceiling and fixed delays used by the worker
"""

from .job_queue import JobQueue
from .models import DispatchError, DispatchStats, WorkerStateError
from .worker import DispatchWorker, RetryPolicy

__all__ = [
    "DispatchWorker",
    "JobQueue",
    "RetryPolicy",
    "DispatchStats",
    "DispatchError",
    "WorkerStateError",
]
