"""Notification senders: one delivery attempt over an external channel.

- NotificationSender: base class (send(job) -> SendResult)
- SmtpNotificationSender: SMTP session per message, via SMTPClient
- HttpApiNotificationSender: HTTPS email API, via requests
- build_sender: picks the channel from EMAIL_CHANNEL
"""

from .base import NotificationSender, build_sender_address
from .exceptions import (
    EmailApiError,
    NotificationError,
    SenderConfigurationError,
    SMTPDeliveryError,
)
from .factory import build_sender
from .http_api import HttpApiNotificationSender
from .smtp import SmtpNotificationSender
from .smtp_client import SMTPClient

__all__ = [
    # Senders
    "NotificationSender",
    "SmtpNotificationSender",
    "HttpApiNotificationSender",
    "SMTPClient",
    "build_sender",
    "build_sender_address",
    # Exceptions
    "NotificationError",
    "SMTPDeliveryError",
    "EmailApiError",
    "SenderConfigurationError",
]
