"""One-shot SMTP sessions on top of smtplib.

Each call to :meth:`SMTPClient.send` opens a connection, negotiates TLS,
logs in when credentials exist, hands over one message and quits. Sessions
are never reused between attempts, so a retry always starts clean.
"""

import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Callable, Optional

from order_dispatch.config.environment import EnvironmentConfig

from .exceptions import SMTPDeliveryError

logger = logging.getLogger(__name__)

IMPLICIT_TLS_PORT = 465


class SMTPClient:
    """Opens a fresh SMTP session per message.

    ``smtp_factory``/``smtp_ssl_factory`` default to ``smtplib.SMTP`` and
    ``smtplib.SMTP_SSL``; tests pass mocks or fake servers instead.
    """

    def __init__(
        self,
        smtp_factory: Optional[Callable] = None,
        smtp_ssl_factory: Optional[Callable] = None,
    ):
        self.smtp_factory = smtp_factory or smtplib.SMTP
        self.smtp_ssl_factory = smtp_ssl_factory or smtplib.SMTP_SSL

    def _connect(self, env_config: EnvironmentConfig, use_tls: bool, timeout: float):
        host, port = env_config.smtp_host, env_config.smtp_port

        if port == IMPLICIT_TLS_PORT:
            logger.debug(f"Opening SMTP_SSL session to {host}:{port}")
            return self.smtp_ssl_factory(
                host, port, context=ssl.create_default_context(), timeout=timeout
            )

        logger.debug(f"Opening SMTP session to {host}:{port}")
        session = self.smtp_factory(host, port, timeout=timeout)
        if use_tls:
            try:
                session.starttls(context=ssl.create_default_context())
            except BaseException:
                self._close(session)
                raise
        return session

    @staticmethod
    def _close(session) -> None:
        try:
            session.quit()
        except (smtplib.SMTPException, OSError) as e:
            logger.debug(f"Ignoring error while closing SMTP session: {e}")

    def send(
        self,
        message: EmailMessage,
        env_config: EnvironmentConfig,
        use_tls: bool = True,
        timeout: float = 30,
    ) -> None:
        """
        Deliver ``message`` in a new session.

        Args:
            message: Message with From/To/Subject already set
            env_config: Host, port and optional credentials
            use_tls: STARTTLS on non-465 ports
            timeout: Socket timeout for the connect and each SMTP command

        Raises:
            SMTPDeliveryError: Wraps every failure, with the cause chained
        """
        try:
            session = self._connect(env_config, use_tls, timeout)
        except smtplib.SMTPException as e:
            raise SMTPDeliveryError(f"SMTP error while opening session: {e}") from e
        except OSError as e:
            # socket.timeout, refused and unreachable all land here
            raise SMTPDeliveryError(f"Network error during SMTP connection: {e}") from e

        try:
            if env_config.has_smtp_credentials():
                session.login(env_config.smtp_user, env_config.smtp_pass)
            session.send_message(message)
        except smtplib.SMTPException as e:
            raise SMTPDeliveryError(f"SMTP error during message delivery: {e}") from e
        except OSError as e:
            raise SMTPDeliveryError(f"Network error during SMTP delivery: {e}") from e
        finally:
            self._close(session)

        logger.debug(f"SMTP server accepted message for {message['To']}")
