"""Non-fatal configuration checks."""

import warnings
from typing import List

from .models import AppConfig


def check_for_warnings(app_config: AppConfig) -> List[str]:
    """
    Check a validated configuration for settings that work but look wrong.

    Args:
        app_config: Validated application configuration

    Returns:
        List of warning messages
    """
    warning_messages = []
    dispatch = app_config.dispatch

    if dispatch.idle_interval_seconds > 30:
        warning_messages.append(
            f"idle_interval of {dispatch.idle_interval_seconds:g}s delays pickup of new "
            "order notifications by up to that long"
        )

    if dispatch.retry_delay_seconds > 60:
        # The single worker sleeps through the retry delay, stalling the queue
        warning_messages.append(
            f"retry_delay of {dispatch.retry_delay_seconds:g}s blocks every other "
            "pending notification while a failed job waits"
        )

    if dispatch.max_attempts == 1:
        warning_messages.append("max_attempts is 1: failed notifications will never be retried")

    if dispatch.shutdown_timeout_seconds < app_config.email.connection_timeout:
        warning_messages.append(
            f"shutdown_timeout ({dispatch.shutdown_timeout_seconds:g}s) is shorter than "
            f"email.connection_timeout ({app_config.email.connection_timeout}s): an in-flight "
            "send may be abandoned on shutdown"
        )

    if not app_config.email.use_tls:
        warning_messages.append("email.use_tls is false: SMTP credentials are sent in clear text")

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """Emit warning messages using Python's warnings module."""
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
