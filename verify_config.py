#!/usr/bin/env python3
"""Quick structural check of config.example.yaml without importing the package."""

import sys
from pathlib import Path

import yaml

KNOWN_SECTIONS = {
    "store": {"name", "currency", "confirmation_subject_prefix", "admin_subject_prefix"},
    "dispatch": {
        "max_attempts",
        "idle_interval",
        "retry_delay",
        "error_cooldown",
        "startup_delay",
        "shutdown_timeout",
    },
    "email": {"use_tls", "connection_timeout", "body_subtype", "user_agent"},
    "logging": {"level", "format"},
}


def verify_config_structure(config_file: Path = Path("config.example.yaml")) -> bool:
    """Check section names, key names and a few value types."""
    if not config_file.exists():
        print(f"✗ {config_file} not found")
        return False

    try:
        with open(config_file, "r") as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        print(f"✗ Failed to parse {config_file}: {e}")
        return False

    if not isinstance(config, dict):
        print(f"✗ {config_file} must contain a YAML mapping")
        return False

    errors = []

    for section, values in config.items():
        if section not in KNOWN_SECTIONS:
            errors.append(f"Unknown section: {section}")
            continue
        if not isinstance(values, dict):
            errors.append(f"'{section}' must be a mapping")
            continue
        for key in values:
            if key not in KNOWN_SECTIONS[section]:
                errors.append(f"Unknown key: {section}.{key}")

    dispatch = config.get("dispatch") or {}
    max_attempts = dispatch.get("max_attempts", 3)
    if not isinstance(max_attempts, int) or isinstance(max_attempts, bool) or max_attempts < 1:
        errors.append("dispatch.max_attempts must be a positive integer")

    email = config.get("email") or {}
    if email.get("body_subtype", "html") not in ("html", "plain"):
        errors.append("email.body_subtype must be 'html' or 'plain'")

    if errors:
        print(f"✗ {config_file} validation failed:")
        for error in errors:
            print(f"  - {error}")
        return False

    print(f"✓ {config_file} structure is valid")
    print(f"  - Max attempts: {max_attempts}")
    print(f"  - Retry delay: {dispatch.get('retry_delay', '5s')}")
    print(f"  - Idle interval: {dispatch.get('idle_interval', '2s')}")
    return True


if __name__ == "__main__":
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("config.example.yaml")
    sys.exit(0 if verify_config_structure(path) else 1)
