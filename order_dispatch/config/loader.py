"""Load config.yaml and the environment into validated models."""

from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from pydantic import ValidationError

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .models import AppConfig
from .validators import check_for_warnings, emit_warnings

# Searched in order when --config is not given.
DEFAULT_CONFIG_CANDIDATES = (
    Path("config.yaml"),
    Path("config") / "config.yaml",
)


def load_config(config_path: Optional[Path] = None) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Build both halves of the runtime configuration.

    An explicit ``config_path`` must exist. Without one the default
    locations are tried and, failing those, built-in defaults are used;
    the dispatcher runs fine without a YAML file.

    Raises:
        ConfigurationError: Unreadable or invalid YAML, or bad environment values
    """
    app_config = load_app_config(config_path)

    try:
        env_config = load_environment_config()
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load environment configuration: {e}",
            suggestions=["Copy .env.example to .env and fill in the SMTP settings"],
        ) from e

    return app_config, env_config


def load_app_config(config_path: Optional[Path] = None) -> AppConfig:
    """YAML half only; emits warnings for risky but valid settings."""
    resolved = _resolve_config_path(config_path)
    app_config = AppConfig() if resolved is None else _to_app_config(_read_mapping(resolved))

    warnings = check_for_warnings(app_config)
    if warnings:
        emit_warnings(warnings)
    return app_config


def _read_mapping(path: Path) -> Dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse YAML configuration: {e}",
            suggestions=["Check YAML syntax and indentation (spaces only) in " + str(path)],
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Cannot read configuration file {path}: {e}",
            suggestions=["Check that the file exists and is readable"],
        ) from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigurationError(
            "Configuration file must contain a YAML mapping",
            errors=[f"Top level of {path} is a {type(raw).__name__}"],
        )
    return raw


def _to_app_config(data: Dict[str, Any]) -> AppConfig:
    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError.from_validation_error(e) from e


def _resolve_config_path(config_path: Optional[Path]) -> Optional[Path]:
    if config_path:
        if config_path.exists():
            return config_path
        raise ConfigurationError(
            f"Configuration file not found: {config_path}",
            suggestions=["Start from config.example.yaml"],
        )
    return next((c for c in DEFAULT_CONFIG_CANDIDATES if c.exists()), None)


def validate_config_file(config_path: Path) -> bool:
    """Pre-deployment check of a YAML file; prints the outcome, ignores the environment."""
    try:
        _to_app_config(_read_mapping(config_path))
    except ConfigurationError as e:
        print(f"✗ {config_path} failed validation:\n{e}")
        return False
    print(f"✓ {config_path} is valid")
    return True
