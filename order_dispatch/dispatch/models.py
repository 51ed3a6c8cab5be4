"""Exceptions and counters for the dispatch queue and worker."""

from dataclasses import dataclass


class DispatchError(Exception):
    """Base exception for dispatch queue and worker errors."""

    pass


class WorkerStateError(DispatchError):
    """Raised when the worker is started while already running."""

    pass


@dataclass
class DispatchStats:
    """Counters describing what the worker has done since it was created.

    Attributes:
        sent: Jobs delivered successfully
        failed_attempts: Individual attempts that failed
        retried: Jobs re-enqueued after a failed attempt
        dropped: Jobs discarded after reaching the retry ceiling
        loop_errors: Unexpected errors caught by the worker loop
    """

    sent: int = 0
    failed_attempts: int = 0
    retried: int = 0
    dropped: int = 0
    loop_errors: int = 0
