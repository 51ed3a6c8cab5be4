"""Base class shared by all notification delivery channels."""

from abc import ABC, abstractmethod

from order_dispatch.config.environment import EnvironmentConfig
from order_dispatch.domain.models import NotificationJob, SendResult


class NotificationSender(ABC):
    """Performs exactly one delivery attempt per call.

    Senders are stateless between calls: each ``send`` opens a fresh
    connection, transmits and closes it. They never retry; every network,
    authentication or rejection error is reported as a failed SendResult
    and the retry decision is left to the dispatch worker.

    Attributes:
        channel: Short channel name used in log records
    """

    channel: str = "unknown"

    @abstractmethod
    def send(self, job: NotificationJob) -> SendResult:
        """Deliver one notification.

        Args:
            job: The job to deliver

        Returns:
            SendResult.ok() on acceptance by the channel, SendResult.failed(reason) otherwise
        """
        pass


def build_sender_address(env_config: EnvironmentConfig) -> str:
    """Build the 'From' address for outgoing emails.

    Uses FROM_NAME with FROM_EMAIL (which defaults to the SMTP user), and
    falls back to a noreply address at the SMTP host.

    Returns:
        Formatted sender address (e.g., "BAZARIO <orders@example.com>")
    """
    sender_email = env_config.from_email or f"noreply@{env_config.smtp_host}"
    return f"{env_config.from_name} <{sender_email}>"
