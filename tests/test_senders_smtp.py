"""Unit tests for the SMTP delivery channel.

Tests the SMTPClient and SmtpNotificationSender for:
- Connection handling (SMTP and SMTP_SSL)
- TLS/STARTTLS negotiation
- Authentication (with and without credentials)
- Message construction from a job
- Mapping of delivery errors to failed SendResults
- Sender address building
"""

import smtplib
from email.message import EmailMessage
from unittest.mock import MagicMock, Mock

import pytest

from order_dispatch.config.environment import EnvironmentConfig
from order_dispatch.config.models import EmailConfig
from order_dispatch.senders import (
    SMTPClient,
    SMTPDeliveryError,
    SmtpNotificationSender,
    build_sender_address,
)

from tests.helpers import make_job


@pytest.fixture
def env_config_with_auth():
    """Environment config with SMTP authentication."""
    return EnvironmentConfig(
        smtp_host="smtp.example.com",
        smtp_port=587,
        smtp_user="orders@example.com",
        smtp_pass="secret123",
        from_name="BAZARIO",
    )


@pytest.fixture
def env_config_without_auth():
    """Environment config without SMTP authentication."""
    return EnvironmentConfig(
        smtp_host="smtp.example.com",
        smtp_port=25,
        from_name="BAZARIO",
    )


@pytest.fixture
def env_config_implicit_tls():
    """Environment config for implicit TLS (port 465)."""
    return EnvironmentConfig(
        smtp_host="smtp.gmail.com",
        smtp_port=465,
        smtp_user="user@gmail.com",
        smtp_pass="apppassword",
    )


@pytest.fixture
def sample_message():
    """Sample email message for testing."""
    msg = EmailMessage()
    msg["Subject"] = "Test Subject"
    msg["From"] = "sender@example.com"
    msg["To"] = "recipient@example.com"
    msg.set_content("Test body")
    return msg


def test_smtp_client_initialization():
    """Test SMTPClient defaults to smtplib classes."""
    client = SMTPClient()

    assert client.smtp_factory is smtplib.SMTP
    assert client.smtp_ssl_factory is smtplib.SMTP_SSL


def test_smtp_client_send_with_starttls(env_config_with_auth, sample_message):
    """Test sending email with STARTTLS (port 587)."""
    mock_smtp = MagicMock()
    mock_factory = Mock(return_value=mock_smtp)

    client = SMTPClient(smtp_factory=mock_factory)
    client.send(sample_message, env_config_with_auth, use_tls=True, timeout=12)

    mock_factory.assert_called_once_with("smtp.example.com", 587, timeout=12)
    mock_smtp.starttls.assert_called_once()
    mock_smtp.login.assert_called_once_with("orders@example.com", "secret123")
    mock_smtp.send_message.assert_called_once_with(sample_message)
    mock_smtp.quit.assert_called_once()


def test_smtp_client_send_with_implicit_tls(env_config_implicit_tls, sample_message):
    """Test sending email with implicit TLS (port 465)."""
    mock_smtp_ssl = MagicMock()
    mock_ssl_factory = Mock(return_value=mock_smtp_ssl)
    mock_factory = Mock()

    client = SMTPClient(smtp_factory=mock_factory, smtp_ssl_factory=mock_ssl_factory)
    client.send(sample_message, env_config_implicit_tls, use_tls=True)

    mock_factory.assert_not_called()
    call_args = mock_ssl_factory.call_args
    assert call_args[0] == ("smtp.gmail.com", 465)
    assert "context" in call_args[1]
    assert call_args[1]["timeout"] == 30

    # Already encrypted, no upgrade
    mock_smtp_ssl.starttls.assert_not_called()
    mock_smtp_ssl.login.assert_called_once_with("user@gmail.com", "apppassword")
    mock_smtp_ssl.send_message.assert_called_once_with(sample_message)
    mock_smtp_ssl.quit.assert_called_once()


def test_smtp_client_send_without_auth(env_config_without_auth, sample_message):
    """Test sending email without authentication."""
    mock_smtp = MagicMock()
    mock_factory = Mock(return_value=mock_smtp)

    client = SMTPClient(smtp_factory=mock_factory)
    client.send(sample_message, env_config_without_auth, use_tls=False)

    mock_smtp.login.assert_not_called()
    mock_smtp.starttls.assert_not_called()
    mock_smtp.send_message.assert_called_once_with(sample_message)
    mock_smtp.quit.assert_called_once()


def test_smtp_client_handles_smtp_exception(env_config_with_auth, sample_message):
    """Test that SMTP exceptions are wrapped in SMTPDeliveryError."""
    mock_smtp = MagicMock()
    mock_smtp.send_message.side_effect = smtplib.SMTPRecipientsRefused({})
    mock_factory = Mock(return_value=mock_smtp)

    client = SMTPClient(smtp_factory=mock_factory)

    with pytest.raises(SMTPDeliveryError) as exc_info:
        client.send(sample_message, env_config_with_auth)

    assert "SMTP error" in str(exc_info.value)
    mock_smtp.quit.assert_called_once()


def test_smtp_client_handles_authentication_error(env_config_with_auth, sample_message):
    """Test that rejected credentials become SMTPDeliveryError."""
    mock_smtp = MagicMock()
    mock_smtp.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
    mock_factory = Mock(return_value=mock_smtp)

    client = SMTPClient(smtp_factory=mock_factory)

    with pytest.raises(SMTPDeliveryError):
        client.send(sample_message, env_config_with_auth)

    mock_smtp.send_message.assert_not_called()


def test_smtp_client_handles_network_error(env_config_with_auth, sample_message):
    """Test that network errors are wrapped in SMTPDeliveryError."""
    mock_factory = Mock(side_effect=ConnectionRefusedError("Connection refused"))

    client = SMTPClient(smtp_factory=mock_factory)

    with pytest.raises(SMTPDeliveryError) as exc_info:
        client.send(sample_message, env_config_with_auth)

    assert "Network error" in str(exc_info.value)


def test_smtp_client_ignores_quit_failure(env_config_with_auth, sample_message):
    """Test that a failing quit() does not mask a successful send."""
    mock_smtp = MagicMock()
    mock_smtp.quit.side_effect = smtplib.SMTPServerDisconnected()
    mock_factory = Mock(return_value=mock_smtp)

    client = SMTPClient(smtp_factory=mock_factory)
    client.send(sample_message, env_config_with_auth)

    mock_smtp.send_message.assert_called_once()


class TestSmtpNotificationSender:
    """Tests for SmtpNotificationSender."""

    def test_build_html_message(self, env_config_with_auth):
        sender = SmtpNotificationSender(env_config_with_auth, smtp_client=Mock())
        job = make_job(
            "order-1042",
            recipient_address="ayesha@example.com",
            recipient_display_name="Ayesha Khan",
            subject="Order Confirmed - #1042",
            rendered_body="<p>Thanks</p>",
        )

        message = sender.build_message(job)

        assert message["Subject"] == "Order Confirmed - #1042"
        assert message["From"] == "BAZARIO <orders@example.com>"
        assert message["To"] == "Ayesha Khan <ayesha@example.com>"
        assert message["X-Correlation-ID"] == "order-1042"
        assert job.job_id in message["Message-ID"]
        assert message.get_content_type() == "text/html"
        assert "<p>Thanks</p>" in message.get_content()

    def test_build_plain_message(self, env_config_with_auth):
        sender = SmtpNotificationSender(env_config_with_auth, smtp_client=Mock())
        job = make_job(body_subtype="plain", rendered_body="Thanks")

        message = sender.build_message(job)

        assert message.get_content_type() == "text/plain"

    def test_send_success(self, env_config_with_auth):
        smtp_client = Mock()
        sender = SmtpNotificationSender(
            env_config_with_auth,
            EmailConfig(connection_timeout=10, use_tls=True),
            smtp_client=smtp_client,
        )

        result = sender.send(make_job())

        assert result.success is True
        args, kwargs = smtp_client.send.call_args
        assert isinstance(args[0], EmailMessage)
        assert args[1] is env_config_with_auth
        assert kwargs == {"use_tls": True, "timeout": 10}

    def test_send_failure_returns_failed_result(self, env_config_with_auth):
        smtp_client = Mock()
        smtp_client.send.side_effect = SMTPDeliveryError("Network error during SMTP connection")
        sender = SmtpNotificationSender(env_config_with_auth, smtp_client=smtp_client)

        result = sender.send(make_job())

        assert result.success is False
        assert "Network error" in result.reason

    def test_invalid_header_returns_failed_result(self, env_config_with_auth):
        smtp_client = Mock()
        sender = SmtpNotificationSender(env_config_with_auth, smtp_client=smtp_client)

        result = sender.send(make_job(subject="Order\nBcc: someone@example.com"))

        assert result.success is False
        assert result.reason.startswith("Invalid message")
        smtp_client.send.assert_not_called()

    def test_end_to_end_with_mock_smtp(self, env_config_with_auth):
        mock_smtp = MagicMock()
        client = SMTPClient(smtp_factory=Mock(return_value=mock_smtp))
        sender = SmtpNotificationSender(env_config_with_auth, smtp_client=client)

        result = sender.send(make_job(recipient_address="ayesha@example.com"))

        assert result.success is True
        sent = mock_smtp.send_message.call_args[0][0]
        assert "ayesha@example.com" in sent["To"]


def test_build_sender_address_with_from_email():
    """Test building sender address from FROM_NAME and FROM_EMAIL."""
    env_config = EnvironmentConfig(
        smtp_user="login@example.com",
        smtp_pass="secret",
        from_email="orders@example.com",
        from_name="BAZARIO",
    )

    assert build_sender_address(env_config) == "BAZARIO <orders@example.com>"


def test_build_sender_address_defaults_to_smtp_user():
    """Test that FROM_EMAIL falls back to SMTP_USER."""
    env_config = EnvironmentConfig(smtp_user="login@example.com", smtp_pass="secret")

    assert build_sender_address(env_config) == "Order Notifications <login@example.com>"


def test_build_sender_address_without_smtp_user():
    """Test building sender address when no address is configured."""
    env_config = EnvironmentConfig(smtp_host="mail.example.com", smtp_port=25)

    assert build_sender_address(env_config) == "Order Notifications <noreply@mail.example.com>"
