"""IMAP transport adapter providing scoped mailbox sessions."""

from __future__ import annotations

import imaplib
import logging
from collections.abc import Iterator
from types import TracebackType

from ..core.errors import AuthenticationError, NetworkError, ProviderLogicError
from ..core.models import MessageChunk, TransportEndpoint
from .tls import create_tls_context

LOGGER = logging.getLogger(__name__)


class ImapError(ProviderLogicError):
    """The IMAP server answered but refused a mailbox command."""


class ImapClient:
    """Thin wrapper around ``imaplib`` offering typed fetch helpers."""

    def __init__(
        self,
        endpoint: TransportEndpoint,
        username: str,
        password: str,
        *,
        mailbox: str = "INBOX",
        timeout: float = 10.0,
    ) -> None:
        """Initialise the client for ``endpoint`` without connecting yet."""
        self._endpoint = endpoint
        self._username = username
        self._password = password
        self._timeout = timeout
        self._connection: imaplib.IMAP4_SSL | None = None
        self.mailbox = mailbox

    # Context manager helpers -------------------------------------------------
    def __enter__(self) -> ImapClient:
        """Connect on entering a context manager scope."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Ensure resources are released on context exit."""
        self.close()

    # Public API ---------------------------------------------------------------
    def connect(self) -> None:
        """Open a TLS session, authenticate, and select the mailbox."""
        if self._connection is not None:
            return

        host, port = self._endpoint.host, self._endpoint.port
        LOGGER.debug("Connecting to IMAP host %s:%s via SSL", host, port)
        try:
            connection = imaplib.IMAP4_SSL(
                host, port, ssl_context=create_tls_context(), timeout=self._timeout
            )
        except OSError as exc:
            raise NetworkError(f"Unable to reach IMAP server {host}:{port}: {exc}") from exc

        # The session is installed before login so that close() can release
        # a half-open connection when authentication or select fails.
        self._connection = connection
        try:
            LOGGER.debug("Authenticating as %s", self._username)
            try:
                connection.login(self._username, self._password)
            except imaplib.IMAP4.error as exc:
                raise AuthenticationError(_describe(exc, "IMAP login failed")) from exc
            status, _ = connection.select(self.mailbox)
            if status != "OK":
                raise ImapError(f"Unable to select mailbox '{self.mailbox}'")
        except OSError as exc:
            self.close()
            raise NetworkError(f"IMAP connection to {host} failed: {exc}") from exc
        except Exception:
            self.close()
            raise

    def fetch_recent(self, limit: int) -> Iterator[MessageChunk]:
        """Yield the ``limit`` highest-UID messages in ascending UID order.

        Messages are fetched with ``BODY.PEEK[]`` so the server-side
        ``\\Seen`` flag is left untouched.
        """
        connection = self._require_connection()
        try:
            status, data = connection.uid("SEARCH", None, "ALL")  # type: ignore[arg-type]
            if status != "OK":
                raise ImapError("Failed to search for message UIDs")
            raw_ids = data[0].split() if data and data[0] else []
            uids = sorted(int(raw) for raw in raw_ids)[-limit:] if limit > 0 else []
            if not uids:
                LOGGER.debug("Mailbox %s is empty", self.mailbox)
                return

            LOGGER.debug("Fetching %d most recent UIDs from %s", len(uids), self.mailbox)
            for uid in uids:
                uid_str = str(uid)
                status_fetch, fetch_data = connection.uid(
                    "FETCH", uid_str, "(BODY.PEEK[])"
                )
                if status_fetch != "OK":
                    raise ImapError(f"Failed to fetch message UID {uid_str}")
                payload = _extract_rfc822(fetch_data)
                if payload is None:
                    LOGGER.warning("No message payload returned for UID %s", uid_str)
                    continue
                yield MessageChunk(uid=uid, raw=payload)
        except imaplib.IMAP4.abort as exc:
            raise NetworkError(_describe(exc, "IMAP connection dropped")) from exc
        except imaplib.IMAP4.error as exc:
            raise ImapError(_describe(exc, "IMAP command failed")) from exc
        except OSError as exc:
            raise NetworkError(f"IMAP connection failed: {exc}") from exc

    def close(self) -> None:
        """Terminate the IMAP session cleanly."""
        if self._connection is None:
            return
        connection = self._connection
        self._connection = None
        try:
            if connection.state == "SELECTED":
                LOGGER.debug("Closing IMAP mailbox")
                connection.close()
        except (imaplib.IMAP4.error, OSError):  # pragma: no cover - server state
            LOGGER.debug("IMAP close raised; continuing with logout")
        finally:
            try:
                connection.logout()
            except (imaplib.IMAP4.error, OSError):  # pragma: no cover
                LOGGER.debug("IMAP logout raised; suppressing during shutdown")

    # Internal helpers ---------------------------------------------------------
    def _require_connection(self) -> imaplib.IMAP4_SSL:
        if self._connection is None:
            raise ImapError("IMAP connection has not been established")
        return self._connection


def _describe(exc: BaseException, fallback: str) -> str:
    """Return a readable message for an ``imaplib`` error."""
    text = str(exc)
    if text.startswith("b'") or text.startswith('b"'):
        text = text[2:-1]
    return text or fallback


def _extract_rfc822(fetch_data: list[tuple[bytes, bytes] | bytes]) -> bytes | None:
    """Extract the message payload from ``imaplib`` response chunks."""
    for entry in fetch_data:
        if isinstance(entry, tuple) and len(entry) == 2:
            return entry[1]
    return None


__all__ = [
    "ImapClient",
    "ImapError",
]
