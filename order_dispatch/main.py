"""Main entry point for the Order Notification Dispatch service."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import os
import signal
import sys
import time
from pathlib import Path
from typing import Optional, Tuple

from pydantic import ValidationError

from order_dispatch.config.environment import EnvironmentConfig
from order_dispatch.config.exceptions import ConfigurationError
from order_dispatch.config.loader import load_config, validate_config_file
from order_dispatch.config.models import AppConfig
from order_dispatch.domain.models import OrderPlaced
from order_dispatch.logging import get_logger
from order_dispatch.logging.config import configure_logging
from order_dispatch.service import DispatchService, build_dispatch_service

logger = get_logger(__name__, component="cli")

TEST_SUBJECT = "Order notification dispatch test"
TEST_BODY = "<p>This is a test message from the order notification dispatcher.</p>"


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load and prepare runtime configuration.

    Args:
        config_path: Path to configuration file (None searches the defaults)
        log_level_override: Log level from CLI (takes precedence)

    Returns:
        Tuple of (AppConfig, EnvironmentConfig) with the effective log level resolved

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    # Log level priority: CLI > Environment > Config
    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level or "INFO"

    return app_config, env_config


def load_order_file(path: Path) -> OrderPlaced:
    """
    Read a committed order from a JSON file.

    Raises:
        ConfigurationError: If the file is missing or is not a valid order
    """
    try:
        return OrderPlaced.model_validate_json(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"Cannot read order file {path}: {e}") from e
    except ValidationError as e:
        raise ConfigurationError.from_validation_error(
            e, suggestions=[f"Check the order fields in {path}"]
        ) from e


def run_once(service: DispatchService, args: argparse.Namespace) -> int:
    """Enqueue the requested notifications, deliver everything, and exit."""
    if args.order_file:
        order = load_order_file(args.order_file)
        service.notifier.notify_order_placed(order)

    if args.send_test:
        service.job_queue.enqueue_notification(
            args.send_test,
            TEST_SUBJECT,
            TEST_BODY,
            "dispatch-test",
            kind="test",
        )

    service.start()
    stopped = service.shutdown(drain=True)
    stats = service.worker.stats

    logger.info(
        f"One-shot dispatch completed: {stats.sent} sent, {stats.dropped} dropped",
        extra={
            "event": "service.once.completed",
            "sent": stats.sent,
            "dropped": stats.dropped,
            "retried": stats.retried,
            "failed_attempts": stats.failed_attempts,
        },
    )

    return 0 if stopped and stats.dropped == 0 else 1


def run_daemon(service: DispatchService) -> int:
    """Run the worker until SIGINT or SIGTERM.

    Handlers only record the request; the bounded shutdown runs here on the
    main thread, so repeated signals cannot block on it.
    """

    def signal_handler(signum, frame):
        logger.info(
            f"Received signal {signum}, shutting down",
            extra={"event": "service.signal_received", "signal": signum},
        )
        service.request_shutdown()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    service.start()

    logger.info(
        "Dispatch worker running. Press Ctrl+C to stop",
        extra={"event": "service.daemon_mode.started"},
    )

    try:
        service.stop_requested.wait()
    except KeyboardInterrupt:
        logger.info(
            "Keyboard interrupt received, shutting down",
            extra={"event": "service.keyboard_interrupt"},
        )

    return 0 if service.shutdown() else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Order Notification Dispatch - background delivery of order confirmation emails"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml if present)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    parser.add_argument(
        "--send-test",
        metavar="EMAIL",
        default=None,
        help="Queue a test message to EMAIL, deliver it and exit",
    )
    parser.add_argument(
        "--order-file",
        type=Path,
        default=None,
        help="Queue notifications for the order in this JSON file, deliver them and exit",
    )
    parser.add_argument(
        "--validate-config",
        type=Path,
        metavar="PATH",
        default=None,
        help="Validate a YAML configuration file and exit (environment is not read)",
    )
    return parser


def main(argv=None) -> int:
    """
    Main entry point for the Order Notification Dispatch service.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    start_time = time.time()
    args = build_parser().parse_args(argv)

    if args.validate_config:
        return 0 if validate_config_file(args.validate_config) else 1

    one_shot = bool(args.send_test or args.order_file)

    try:
        # Configuration first, so logging can pick up the format
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        environment = os.environ.get("ENVIRONMENT", "local")
        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=environment,
        )

        logger.info(
            "Order Notification Dispatch starting",
            extra={
                "event": "service.starting",
                "config_path": str(args.config) if args.config else "default",
                "log_level": env_config.log_level,
                "one_shot": one_shot,
            },
        )
        logger.info(
            "Configuration loaded",
            extra={
                "event": "config.loaded",
                "max_attempts": app_config.dispatch.max_attempts,
                "retry_delay_seconds": app_config.dispatch.retry_delay_seconds,
                "idle_interval_seconds": app_config.dispatch.idle_interval_seconds,
                **env_config.describe(),
            },
        )

        service = build_dispatch_service(app_config, env_config)

        if one_shot:
            exit_code = run_once(service, args)
        else:
            exit_code = run_daemon(service)

        uptime_seconds = time.time() - start_time
        logger.info(
            "Order Notification Dispatch stopped",
            extra={
                "event": "service.stopping",
                "uptime_seconds": round(uptime_seconds, 2),
            },
        )
        return exit_code

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        logger.error(
            f"Configuration error: {e}",
            extra={"event": "config.error", "error_type": "ConfigurationError"},
        )
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error during startup",
            extra={
                "event": "service.startup.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
