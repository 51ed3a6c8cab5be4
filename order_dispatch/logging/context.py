"""Per-thread fields merged into every log record.

The dispatch worker scopes ``job_id``/``correlation_id`` around each
attempt and the notifier scopes ``correlation_id`` around an order. Values
live in a ``ContextVar`` so the worker thread and request threads never see
each other's fields.
"""

from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Any, Dict, Iterator

_fields: ContextVar[Dict[str, Any]] = ContextVar("order_dispatch_log_fields", default={})


def get_log_context() -> Dict[str, Any]:
    """Snapshot of the fields active in this thread."""
    return dict(_fields.get())


def push_log_context(**fields: Any) -> Token:
    """Layer ``fields`` over the active ones; undo with :func:`pop_log_context`."""
    return _fields.set({**_fields.get(), **fields})


def pop_log_context(token: Token) -> None:
    _fields.reset(token)


def clear_log_context() -> None:
    _fields.set({})


@contextmanager
def log_context(**fields: Any) -> Iterator[Dict[str, Any]]:
    """Scope ``fields`` to a ``with`` block.

    >>> with log_context(job_id=job.job_id, correlation_id=job.correlation_id):
    ...     logger.info("Attempting delivery", extra={"event": "notification.attempt"})
    """
    token = push_log_context(**fields)
    try:
        yield get_log_context()
    finally:
        pop_log_context(token)
