"""Factory function for instantiating the configured delivery channel."""

import logging
from typing import Optional

from order_dispatch.config.environment import EnvironmentConfig
from order_dispatch.config.models import EmailConfig

from .base import NotificationSender
from .exceptions import SenderConfigurationError
from .http_api import HttpApiNotificationSender
from .smtp import SmtpNotificationSender

logger = logging.getLogger(__name__)

SENDER_CLASSES = {
    "smtp": SmtpNotificationSender,
    "api": HttpApiNotificationSender,
}


def build_sender(
    env_config: EnvironmentConfig, email_config: Optional[EmailConfig] = None
) -> NotificationSender:
    """Instantiate the sender selected by EMAIL_CHANNEL.

    Args:
        env_config: Environment configuration (channel, host, credentials)
        email_config: Timeout and TLS settings

    Returns:
        Sender for the configured channel

    Raises:
        SenderConfigurationError: If the channel is unknown or misconfigured

    Example:
        >>> sender = build_sender(load_environment_config(), EmailConfig())
        >>> sender.channel
        'smtp'
    """
    channel = (env_config.email_channel or "smtp").lower()
    sender_class = SENDER_CLASSES.get(channel)

    if not sender_class:
        supported = ", ".join(sorted(SENDER_CLASSES))
        raise SenderConfigurationError(
            f"Unknown email channel: {env_config.email_channel}. Supported channels: {supported}"
        )

    logger.debug(
        "Creating notification sender",
        extra={"channel": channel, "sender_class": sender_class.__name__},
    )

    return sender_class(env_config, email_config or EmailConfig())
