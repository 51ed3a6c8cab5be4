"""Structured logging for the dispatch queue.

Every lifecycle transition of a notification job is emitted as a log record
carrying an ``event`` field plus the job's ``job_id`` and ``correlation_id``,
which is what operators use to rebuild delivery history.
"""

import logging
from typing import Optional, Union


class ComponentLoggerAdapter(logging.LoggerAdapter):
    """Adds a fixed ``component`` field; per-call ``extra`` keys override it."""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(
    name: str, component: Optional[str] = None
) -> Union[logging.Logger, ComponentLoggerAdapter]:
    """``logging.getLogger(name)``, wrapped when ``component`` is given.

    >>> logger = get_logger(__name__, component="worker")
    >>> logger.info("Worker started", extra={"event": "worker.started"})
    """
    base = logging.getLogger(name)
    return ComponentLoggerAdapter(base, {"component": component}) if component else base
