"""Tests for the SMTP submission client."""

from __future__ import annotations

import smtplib
import ssl
from email.message import Message as EmailMessage
from unittest.mock import MagicMock, patch

import pytest

from nexus_mail.core.errors import AuthenticationError, NetworkError
from nexus_mail.core.models import OutgoingMessage, TransportEndpoint
from nexus_mail.transport import SmtpClient, SmtpError

ENDPOINT = TransportEndpoint(host="smtp.test", port=587)
SMTP_PATH = "nexus_mail.transport.smtp_client.smtplib.SMTP"


def _outgoing() -> OutgoingMessage:
    return OutgoingMessage(to="bob@example.com", subject="Hello", body="Line <1>\nLine 2")


def test_send_builds_multipart_message_and_returns_message_id() -> None:
    connection = MagicMock()
    connection.send_message.return_value = {}

    with patch(SMTP_PATH, return_value=connection) as factory:
        with SmtpClient(ENDPOINT, "alice@test.dev", "secret", timeout=5.0) as client:
            message_id = client.send(_outgoing())

    factory.assert_called_once_with("smtp.test", 587, timeout=5.0)
    connection.starttls.assert_called_once()
    connection.login.assert_called_once_with("alice@test.dev", "secret")
    connection.quit.assert_called_once()

    sent: EmailMessage = connection.send_message.call_args.args[0]
    assert sent["From"] == "alice@test.dev"
    assert sent["To"] == "bob@example.com"
    assert sent["Subject"] == "Hello"
    assert sent["Message-ID"] == message_id
    assert message_id.endswith("@test.dev>")
    plain, html = sent.get_payload()
    assert plain.get_content_type() == "text/plain"
    assert html.get_content_type() == "text/html"
    assert "Line &lt;1&gt;<br>Line 2" in html.get_payload(decode=True).decode("utf-8")


def test_rejected_login_raises_authentication_error() -> None:
    connection = MagicMock()
    connection.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")

    with patch(SMTP_PATH, return_value=connection):
        with pytest.raises(AuthenticationError):
            SmtpClient(ENDPOINT, "alice@test.dev", "wrong").connect()

    connection.quit.assert_called_once()


def test_connect_timeout_raises_network_error() -> None:
    with patch(SMTP_PATH, side_effect=TimeoutError("timed out")):
        with pytest.raises(NetworkError):
            SmtpClient(ENDPOINT, "alice@test.dev", "secret").connect()


def test_refused_recipient_raises_smtp_error() -> None:
    connection = MagicMock()
    connection.send_message.side_effect = smtplib.SMTPRecipientsRefused(
        {"bob@example.com": (550, b"no such user")}
    )

    with patch(SMTP_PATH, return_value=connection):
        with SmtpClient(ENDPOINT, "alice@test.dev", "secret") as client:
            with pytest.raises(SmtpError):
                client.send(_outgoing())


def test_send_requires_connection() -> None:
    with pytest.raises(SmtpError):
        SmtpClient(ENDPOINT, "alice@test.dev", "secret").send(_outgoing())


def test_starttls_verifies_server_certificate() -> None:
    connection = MagicMock()

    with patch(SMTP_PATH, return_value=connection):
        SmtpClient(ENDPOINT, "alice@test.dev", "secret").connect()

    context = connection.starttls.call_args.kwargs["context"]
    assert isinstance(context, ssl.SSLContext)
    assert context.verify_mode == ssl.CERT_REQUIRED
    assert context.check_hostname is True
    assert context.minimum_version == ssl.TLSVersion.TLSv1_2
