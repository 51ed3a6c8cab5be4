"""Root logger setup and the two output formats the dispatcher supports.

``json`` emits one object per line for log shippers; ``key-value`` is the
console format. Both append whatever structured fields a record carries
(``event``, ``job_id``, ``correlation_id``, ``attempt`` ...).
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, Literal, Optional, TextIO, Tuple

from .context import get_log_context

LogFormat = Literal["json", "key-value"]

SERVICE_NAME = "order-notification-dispatch"

# Present on every LogRecord; never treated as a structured field.
_RECORD_BUILTINS = frozenset(
    logging.makeLogRecord({}).__dict__.keys()
    | {"message", "asctime", "exc_info", "exc_text", "stack_info", "taskName"}
)


def _structured_fields(record: logging.LogRecord, skip=_RECORD_BUILTINS) -> Iterator[Tuple[str, Any]]:
    for key, value in record.__dict__.items():
        if key not in skip and not key.startswith("_"):
            yield key, value


class ContextualFilter(logging.Filter):
    """Stamp records with service/environment and the active log context.

    A field passed explicitly through ``extra`` is left alone when the
    context holds the same key.
    """

    def __init__(self, service: str = SERVICE_NAME, environment: str = "local"):
        super().__init__()
        self.service = service
        self.environment = environment

    def filter(self, record: logging.LogRecord) -> bool:
        record.service = self.service
        record.environment = self.environment
        for key, value in get_log_context().items():
            record.__dict__.setdefault(key, value)
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record, timestamps in UTC with milliseconds."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in _structured_fields(record):
            payload[key] = self._jsonable(value)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)

    @staticmethod
    def _jsonable(value: Any) -> Any:
        if isinstance(value, datetime):
            return value.isoformat()
        if value is None or isinstance(value, (str, int, float, bool, list, dict)):
            return value
        return str(value)


class KeyValueFormatter(logging.Formatter):
    """``<base format> key=value ...`` with keys sorted.

    ``service`` and ``environment`` are constant per process and omitted.
    """

    _OMITTED = _RECORD_BUILTINS | {"service", "environment"}

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        pairs = sorted(_structured_fields(record, self._OMITTED))
        if not pairs:
            return line
        return line + " " + " ".join(f"{key}={self._render(value)}" for key, value in pairs)

    @staticmethod
    def _render(value: Any) -> str:
        if value is None:
            return "null"
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, datetime):
            return value.isoformat()
        text = str(value)
        if isinstance(value, str) and any(ch in text for ch in " =,"):
            return f'"{text}"'
        return text


_FORMATTERS: Dict[str, Callable[[], logging.Formatter]] = {
    "json": JSONFormatter,
    "key-value": lambda: KeyValueFormatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    ),
}


def configure_logging(
    level: str = "INFO",
    format_type: LogFormat = "key-value",
    environment: str = "local",
    stream: Optional[TextIO] = None,
) -> logging.Handler:
    """
    Replace the root logger's handlers with a single stream handler.

    Args:
        level: Level name such as INFO or DEBUG
        format_type: 'json' or 'key-value'
        environment: Label stamped on every record (production, staging, local)
        stream: Destination, stdout unless given

    Returns:
        The installed handler

    Raises:
        ValueError: Unknown level name or format
    """
    level_name = str(level).upper()
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")
    if format_type not in _FORMATTERS:
        raise ValueError(f"Invalid log format: {format_type}. Must be 'json' or 'key-value'")

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(_FORMATTERS[format_type]())
    handler.addFilter(ContextualFilter(environment=environment))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={
            "event": "logging.configured",
            "component": "logging",
            "log_level": level_name,
            "log_format": format_type,
        },
    )
    return handler
