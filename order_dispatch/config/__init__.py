"""YAML and environment configuration for the dispatcher.

``load_config`` returns ``(AppConfig, EnvironmentConfig)``; everything else
here is exported for tests and for verify_config.py style checks.
"""

from .environment import EnvironmentConfig, load_environment_config, parse_recipients
from .exceptions import ConfigurationError
from .loader import load_app_config, load_config, validate_config_file
from .models import (
    AppConfig,
    BodySubtype,
    DispatchConfig,
    EmailConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    StoreConfig,
)

__all__ = [
    "AppConfig",
    "BodySubtype",
    "ConfigurationError",
    "DispatchConfig",
    "EmailConfig",
    "EnvironmentConfig",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "StoreConfig",
    "load_app_config",
    "load_config",
    "load_environment_config",
    "parse_recipients",
    "validate_config_file",
]
