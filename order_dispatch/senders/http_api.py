"""HTTPS email API delivery channel.

Posts one JSON document per notification to a transactional email API.
The payload shape is deliberately generic (from / to / subject / body) so
it can front most providers through a small relay.
"""

import logging
from typing import Any, Dict, Optional

import requests

from order_dispatch.config.environment import EnvironmentConfig
from order_dispatch.config.models import EmailConfig
from order_dispatch.domain.models import NotificationJob, SendResult
from order_dispatch.logging import get_logger

from .base import NotificationSender
from .exceptions import EmailApiError, SenderConfigurationError

logger = get_logger(__name__, component="sender")


class HttpApiNotificationSender(NotificationSender):
    """Delivers notifications through an HTTP email API.

    Attributes:
        api_url: Endpoint receiving POSTed messages
        timeout: Request timeout in seconds
    """

    channel = "api"

    def __init__(
        self,
        env_config: EnvironmentConfig,
        email_config: Optional[EmailConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        Args:
            env_config: Environment configuration with EMAIL_API_URL / EMAIL_API_KEY
            email_config: Timeout and User-Agent settings
            session: Optional session (for mocking); by default every call
                uses a fresh connection

        Raises:
            SenderConfigurationError: If the API URL or key is missing
        """
        if not env_config.email_api_url:
            raise SenderConfigurationError("EMAIL_API_URL is required for the api channel")
        if not env_config.email_api_key:
            raise SenderConfigurationError("EMAIL_API_KEY is required for the api channel")

        email_config = email_config or EmailConfig()
        self.env_config = env_config
        self.api_url = env_config.email_api_url
        self.timeout = email_config.connection_timeout
        self.user_agent = email_config.user_agent
        self._session = session

    def build_payload(self, job: NotificationJob) -> Dict[str, Any]:
        """Build the JSON body for one notification."""
        return {
            "from": {
                "email": self.env_config.from_email,
                "name": self.env_config.from_name,
            },
            "to": [
                {"email": job.recipient_address, "name": job.recipient_display_name},
            ],
            "subject": job.subject,
            "content_type": "text/html" if job.body_subtype == "html" else "text/plain",
            "body": job.rendered_body,
            "correlation_id": job.correlation_id,
        }

    def send(self, job: NotificationJob) -> SendResult:
        try:
            self._post(self.build_payload(job))
        except EmailApiError as e:
            return SendResult.failed(str(e))
        return SendResult.ok()

    def _post(self, payload: Dict[str, Any]) -> None:
        """POST one message to the API.

        Raises:
            EmailApiError: On timeout, connection failure or HTTP status >= 400
        """
        headers = {
            "Authorization": f"Bearer {self.env_config.email_api_key}",
            "User-Agent": self.user_agent,
            "Connection": "close",
        }

        try:
            logger.debug(
                f"HTTP POST to {self.api_url}",
                extra={"event": "sender.api.request", "url": self.api_url, "timeout": self.timeout},
            )
            if self._session is not None:
                response = self._session.post(
                    self.api_url, json=payload, headers=headers, timeout=self.timeout
                )
            else:
                response = requests.post(
                    self.api_url, json=payload, headers=headers, timeout=self.timeout
                )
        except requests.exceptions.Timeout as e:
            logger.warning(
                f"Email API request timed out after {self.timeout} seconds",
                extra={"event": "sender.api.failed", "error_type": "Timeout", "url": self.api_url},
            )
            raise EmailApiError(
                f"Email API request timed out after {self.timeout} seconds"
            ) from e
        except requests.exceptions.RequestException as e:
            logger.warning(
                f"Email API request failed: {e}",
                extra={
                    "event": "sender.api.failed",
                    "error_type": type(e).__name__,
                    "url": self.api_url,
                },
            )
            raise EmailApiError(f"Email API request failed: {e}") from e

        if response.status_code >= 400:
            # 5xx and 429 are usually transient; everything else is a rejection
            transient = response.status_code >= 500 or response.status_code == 429
            logger.log(
                logging.WARNING if transient else logging.ERROR,
                f"Email API returned HTTP {response.status_code}",
                extra={
                    "event": "sender.api.failed",
                    "status_code": response.status_code,
                    "transient": transient,
                    "url": self.api_url,
                },
            )
            raise EmailApiError(
                f"HTTP {response.status_code}: {response.reason}",
                status_code=response.status_code,
            )
