"""SMTP delivery channel."""

from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from typing import Optional

from order_dispatch.config.environment import EnvironmentConfig
from order_dispatch.config.models import EmailConfig
from order_dispatch.domain.models import NotificationJob, SendResult
from order_dispatch.logging import get_logger

from .base import NotificationSender, build_sender_address
from .exceptions import SMTPDeliveryError
from .smtp_client import SMTPClient

logger = get_logger(__name__, component="sender")


class SmtpNotificationSender(NotificationSender):
    """Delivers notifications through an SMTP session (one session per job)."""

    channel = "smtp"

    def __init__(
        self,
        env_config: EnvironmentConfig,
        email_config: Optional[EmailConfig] = None,
        smtp_client: Optional[SMTPClient] = None,
    ):
        self.env_config = env_config
        self.email_config = email_config or EmailConfig()
        self.smtp_client = smtp_client or SMTPClient()
        self.sender_address = build_sender_address(env_config)

    def build_message(self, job: NotificationJob) -> EmailMessage:
        """Turn a job into a MIME message ready for smtplib."""
        message = EmailMessage()
        message["Subject"] = job.subject
        message["From"] = self.sender_address
        message["To"] = formataddr((job.recipient_display_name, job.recipient_address))
        message["Message-ID"] = make_msgid(idstring=job.job_id)
        message["X-Correlation-ID"] = job.correlation_id

        if job.body_subtype == "html":
            message.set_content(job.rendered_body, subtype="html")
        else:
            message.set_content(job.rendered_body)

        return message

    def send(self, job: NotificationJob) -> SendResult:
        try:
            message = self.build_message(job)
        except (ValueError, TypeError) as e:
            # Malformed header content, e.g. a newline in the subject
            logger.error(
                f"Could not build email for {job.correlation_id}: {e}",
                extra={"event": "sender.message.invalid", "channel": self.channel},
            )
            return SendResult.failed(f"Invalid message: {e}")

        try:
            self.smtp_client.send(
                message,
                self.env_config,
                use_tls=self.email_config.use_tls,
                timeout=self.email_config.connection_timeout,
            )
        except SMTPDeliveryError as e:
            logger.warning(
                f"SMTP delivery to {job.recipient_address} failed: {e}",
                extra={
                    "event": "sender.smtp.failed",
                    "channel": self.channel,
                    "error_type": type(e.__cause__ or e).__name__,
                },
            )
            return SendResult.failed(str(e))

        return SendResult.ok()
