"""Custom exceptions for notification delivery channels."""


class NotificationError(Exception):
    """Base exception for notification-related errors."""

    pass


class SMTPDeliveryError(NotificationError):
    """Raised when a single SMTP delivery attempt fails.

    Covers connection, TLS negotiation, authentication and recipient
    rejection errors alike; the caller decides whether to retry.
    """

    pass


class EmailApiError(NotificationError):
    """Raised when a request to the HTTP email API fails.

    Attributes:
        status_code: HTTP status returned by the API (0 when no response arrived)
    """

    def __init__(self, message: str, status_code: int = 0) -> None:
        super().__init__(message)
        self.status_code = status_code


class SenderConfigurationError(NotificationError):
    """Invalid delivery channel configuration (unknown channel, missing API URL/key)."""

    pass
