"""Environment variable loading and validation.

Delivery-channel host, port and credentials are static for the lifetime of
the process: they are read once at startup and never rotated.
"""

import os
from typing import Dict, List, Optional

from email_validator import EmailNotValidError, validate_email

from .exceptions import ConfigurationError

SUPPORTED_CHANNELS = ("smtp", "api")


class EnvironmentConfig:
    """Environment variable configuration holder."""

    def __init__(
        self,
        smtp_host: str = "smtp.gmail.com",
        smtp_port: int = 587,
        smtp_user: Optional[str] = None,
        smtp_pass: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
        admin_emails: Optional[List[str]] = None,
        email_channel: str = "smtp",
        email_api_url: Optional[str] = None,
        email_api_key: Optional[str] = None,
        log_level: Optional[str] = None,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_pass = smtp_pass
        self.from_email = from_email or smtp_user
        self.from_name = from_name or "Order Notifications"
        self.admin_emails = list(admin_emails or [])
        self.email_channel = email_channel
        self.email_api_url = email_api_url
        self.email_api_key = email_api_key
        self.log_level = log_level

    def has_smtp_credentials(self) -> bool:
        """Whether both SMTP username and password are configured."""
        return bool(self.smtp_user and self.smtp_pass)

    def describe(self) -> Dict[str, str]:
        """Return a log-safe summary of the delivery settings.

        Credentials are reported only as set / not set.
        """
        return {
            "email_channel": self.email_channel,
            "smtp_host": self.smtp_host,
            "smtp_port": str(self.smtp_port),
            "smtp_user": self.smtp_user or "NOT SET",
            "smtp_pass": "configured" if self.smtp_pass else "NOT SET",
            "from_email": self.from_email or "NOT SET",
            "admin_recipients": str(len(self.admin_emails)),
            "email_api_url": self.email_api_url or "NOT SET",
            "email_api_key": "configured" if self.email_api_key else "NOT SET",
        }


def parse_recipients(recipient_string: str) -> List[str]:
    """Parse and validate comma-separated email addresses.

    Args:
        recipient_string: Comma-separated email addresses

    Returns:
        List of normalized email addresses

    Raises:
        ValueError: If any email address is invalid or none are given
    """
    recipients = []

    for email in (part.strip() for part in recipient_string.split(",")):
        if not email:
            continue

        try:
            validated = validate_email(email, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValueError(f"Invalid email address: '{email}' - {e}") from e
        recipients.append(validated.normalized)

    if not recipients:
        raise ValueError("No valid email addresses found")

    return recipients


def load_environment_config() -> EnvironmentConfig:
    """
    Load and validate environment variables.

    Environment variables (all optional, defaults in brackets):
    - SMTP_HOST: SMTP server hostname [smtp.gmail.com]
    - SMTP_PORT: SMTP server port, 1-65535 [587]
    - SMTP_USER / EMAIL_USER: SMTP authentication username
    - SMTP_PASS / EMAIL_PASS: SMTP authentication password
    - FROM_EMAIL: Sender address [SMTP user]
    - FROM_NAME: Sender display name [Order Notifications]
    - ADMIN_EMAIL: Comma-separated admin alert recipients
    - EMAIL_CHANNEL: Delivery channel, smtp or api [smtp]
    - EMAIL_API_URL / EMAIL_API_KEY: HTTPS email API endpoint and key
    - LOG_LEVEL: Override log level

    Returns:
        EnvironmentConfig object with validated values

    Raises:
        ConfigurationError: If any variable is invalid (all errors reported together)
    """
    errors = []

    smtp_host = os.getenv("SMTP_HOST") or "smtp.gmail.com"
    smtp_port_str = os.getenv("SMTP_PORT") or "587"
    smtp_user = os.getenv("SMTP_USER") or os.getenv("EMAIL_USER")
    smtp_pass = os.getenv("SMTP_PASS") or os.getenv("EMAIL_PASS")
    from_email = os.getenv("FROM_EMAIL")
    from_name = os.getenv("FROM_NAME")
    admin_email = os.getenv("ADMIN_EMAIL")
    email_channel = (os.getenv("EMAIL_CHANNEL") or "smtp").strip().lower()
    email_api_url = os.getenv("EMAIL_API_URL")
    email_api_key = os.getenv("EMAIL_API_KEY")
    log_level = os.getenv("LOG_LEVEL")

    smtp_port = None
    try:
        smtp_port = int(smtp_port_str)
        if smtp_port < 1 or smtp_port > 65535:
            errors.append(f"Invalid SMTP_PORT: {smtp_port}. Must be between 1 and 65535.")
    except ValueError:
        errors.append(f"Invalid SMTP_PORT: '{smtp_port_str}'. Must be a valid integer.")

    if smtp_user and not smtp_pass:
        errors.append(
            "SMTP_USER is set but SMTP_PASS is not. Both must be set for authentication."
        )
    elif smtp_pass and not smtp_user:
        errors.append(
            "SMTP_PASS is set but SMTP_USER is not. Both must be set for authentication."
        )

    if from_email:
        try:
            from_email = parse_recipients(from_email)[0]
        except ValueError as e:
            errors.append(f"Invalid FROM_EMAIL: {e}")

    admin_emails: List[str] = []
    if admin_email:
        try:
            admin_emails = parse_recipients(admin_email)
        except ValueError as e:
            errors.append(f"Invalid ADMIN_EMAIL: {e}")

    if email_channel not in SUPPORTED_CHANNELS:
        errors.append(
            f"Invalid EMAIL_CHANNEL: '{email_channel}'. "
            f"Must be one of: {', '.join(SUPPORTED_CHANNELS)}"
        )
    elif email_channel == "api":
        if not email_api_url:
            errors.append("EMAIL_CHANNEL is 'api' but EMAIL_API_URL is not set.")
        elif not email_api_url.startswith(("https://", "http://")):
            errors.append(f"Invalid EMAIL_API_URL: '{email_api_url}'. Must be an http(s) URL.")
        if not email_api_key:
            errors.append("EMAIL_CHANNEL is 'api' but EMAIL_API_KEY is not set.")

    if log_level:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if log_level.upper() not in valid_levels:
            errors.append(
                f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(valid_levels)}"
            )

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and fill in your credentials",
                "Check that email addresses are valid",
                "Verify SMTP_PORT is a number between 1 and 65535",
            ],
        )

    return EnvironmentConfig(
        smtp_host=smtp_host,
        smtp_port=smtp_port,
        smtp_user=smtp_user,
        smtp_pass=smtp_pass,
        from_email=from_email,
        from_name=from_name,
        admin_emails=admin_emails,
        email_channel=email_channel,
        email_api_url=email_api_url,
        email_api_key=email_api_key,
        log_level=log_level.upper() if log_level else None,
    )
