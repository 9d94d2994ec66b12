"""SMTP client for submitting messages on behalf of linked accounts."""

from __future__ import annotations

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formatdate, make_msgid

from ..core.errors import AuthenticationError, NetworkError, ProviderLogicError
from ..core.models import OutgoingMessage, TransportEndpoint
from .formatting import render_html_body
from .tls import create_tls_context

LOGGER = logging.getLogger(__name__)


class SmtpError(ProviderLogicError):
    """The SMTP server accepted the session but refused the submission."""


class SmtpClient:
    """SMTP client for sending emails.

    Provides context manager interface for automatic connection management.
    Sessions are upgraded with STARTTLS before authenticating.

    Example:
        >>> endpoint = TransportEndpoint(host="smtp.gmail.com", port=587)
        >>> with SmtpClient(endpoint, "me@gmail.com", "app-password") as client:
        ...     message = OutgoingMessage(to="user@example.com", ...)
        ...     message_id = client.send(message)
    """

    def __init__(
        self,
        endpoint: TransportEndpoint,
        username: str,
        password: str,
        *,
        timeout: float = 30.0,
    ) -> None:
        """Initialize SMTP client with the submission endpoint and credentials.

        Args:
            endpoint: SMTP host and port
            username: Account address used for login and the From header
            password: Stored account credential
            timeout: Socket timeout in seconds
        """
        self._endpoint = endpoint
        self._username = username
        self._password = password
        self._timeout = timeout
        self._connection: smtplib.SMTP | None = None

    def __enter__(self) -> SmtpClient:
        """Enter context manager, establishing connection."""
        self.connect()
        return self

    def __exit__(self, *args: object) -> None:
        """Exit context manager, closing connection."""
        self.disconnect()

    def connect(self) -> None:
        """Establish SMTP connection and authenticate.

        Raises:
            AuthenticationError: If the server rejects the credentials
            NetworkError: If the server cannot be reached
            SmtpError: For any other protocol failure
        """
        host, port = self._endpoint.host, self._endpoint.port
        LOGGER.info("Attempting SMTP connection to %s:%d", host, port)

        try:
            self._connection = smtplib.SMTP(host, port, timeout=self._timeout)
            LOGGER.debug("Upgrading SMTP connection with STARTTLS")
            self._connection.starttls(context=create_tls_context())

            LOGGER.debug("Authenticating as %s", self._username)
            self._connection.login(self._username, self._password)
            LOGGER.info("Connected to SMTP server: %s", host)

        except smtplib.SMTPAuthenticationError as exc:
            LOGGER.error("SMTP authentication failed: %s", exc)
            self.disconnect()
            raise AuthenticationError(f"SMTP authentication failed: {exc}") from exc
        except (smtplib.SMTPConnectError, smtplib.SMTPServerDisconnected) as exc:
            LOGGER.error("SMTP connection failed: %s", exc)
            self.disconnect()
            raise NetworkError(f"Failed to connect to SMTP server: {exc}") from exc
        except smtplib.SMTPException as exc:
            LOGGER.error("SMTP error: %s", exc)
            self.disconnect()
            raise SmtpError(f"SMTP error: {exc}") from exc
        except OSError as exc:
            LOGGER.error("Network error connecting to SMTP server: %s", exc)
            self.disconnect()
            raise NetworkError(f"Network error: {exc}") from exc

    def disconnect(self) -> None:
        """Close SMTP connection gracefully."""
        if self._connection:
            try:
                self._connection.quit()
                LOGGER.debug("SMTP connection closed")
            except (smtplib.SMTPException, OSError) as exc:
                LOGGER.warning("Error closing SMTP connection: %s", exc)
            finally:
                self._connection = None

    def send(self, message: OutgoingMessage) -> str:
        """Submit a message and return its ``Message-ID``.

        Args:
            message: The email message to send

        Raises:
            SmtpError: If the server refuses the submission
            NetworkError: If the connection drops or times out
        """
        if not self._connection:
            raise SmtpError("Not connected to SMTP server")

        LOGGER.info("Preparing to send email to %s: %s", message.to, message.subject)
        mime_message = self._build_mime_message(message)
        message_id = mime_message["Message-ID"]

        try:
            refused = self._connection.send_message(mime_message)
        except smtplib.SMTPRecipientsRefused as exc:
            LOGGER.error("All recipients refused: %s", exc)
            raise SmtpError(f"All recipients refused: {exc}") from exc
        except smtplib.SMTPSenderRefused as exc:
            LOGGER.error("Sender refused: %s", exc)
            raise SmtpError(f"Sender refused: {exc}") from exc
        except smtplib.SMTPDataError as exc:
            LOGGER.error("SMTP data error: %s", exc)
            raise SmtpError(f"SMTP data error: {exc}") from exc
        except smtplib.SMTPServerDisconnected as exc:
            LOGGER.error("SMTP server disconnected: %s", exc)
            raise NetworkError(f"SMTP server disconnected: {exc}") from exc
        except smtplib.SMTPException as exc:
            LOGGER.error("Failed to send email: %s", exc)
            raise SmtpError(f"Failed to send email: {exc}") from exc
        except OSError as exc:
            LOGGER.error("Network error while sending email: %s", exc)
            raise NetworkError(f"Network error: {exc}") from exc

        if refused:
            LOGGER.warning("Some recipients were refused: %s", refused)
            raise SmtpError(f"Some recipients were refused: {refused}")

        LOGGER.info("Email sent to %s with id %s", message.to, message_id)
        return message_id

    def _build_mime_message(self, message: OutgoingMessage) -> MIMEMultipart:
        """Build a multipart/alternative message with text and HTML bodies."""
        mime_msg = MIMEMultipart("alternative")
        domain = self._username.rpartition("@")[2] or None

        mime_msg["From"] = self._username
        mime_msg["To"] = message.to
        mime_msg["Subject"] = message.subject
        mime_msg["Date"] = formatdate(localtime=False)
        mime_msg["Message-ID"] = make_msgid(domain=domain)

        mime_msg.attach(MIMEText(message.body, "plain", "utf-8"))
        mime_msg.attach(MIMEText(render_html_body(message.body), "html", "utf-8"))
        LOGGER.debug("Built MIME message with %d body chars", len(message.body))
        return mime_msg


__all__ = ["SmtpClient", "SmtpError"]
