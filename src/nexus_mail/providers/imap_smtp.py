"""IMAP + SMTP provider variant."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from ..core.config import ImapSettings, SmtpSettings
from ..core.models import (
    Account,
    ConnectionRequest,
    OutgoingMessage,
    ProtocolKind,
    TransportEndpoint,
)
from ..transport.imap_client import ImapClient
from ..transport.resolver import derive_smtp_host, resolve_imap_endpoint
from ..transport.smtp_client import SmtpClient

LOGGER = logging.getLogger(__name__)

ImapFactory = Callable[..., ImapClient]
SmtpFactory = Callable[..., SmtpClient]


class ImapSmtpProvider:
    """Pull over IMAP, submit over SMTP with STARTTLS."""

    kind = ProtocolKind.IMAP_SMTP

    def __init__(
        self,
        imap: ImapSettings,
        smtp: SmtpSettings,
        *,
        imap_factory: ImapFactory = ImapClient,
        smtp_factory: SmtpFactory = SmtpClient,
    ) -> None:
        self._imap = imap
        self._smtp = smtp
        self._imap_factory = imap_factory
        self._smtp_factory = smtp_factory

    def build_account(
        self,
        request: ConnectionRequest,
        *,
        account_id: str,
        user_id: str,
        created_at: datetime,
    ) -> Account:
        """Return a new account with resolved IMAP and default SMTP endpoints."""
        endpoint = resolve_imap_endpoint(
            request.address, request.host, request.port or self._imap.default_port
        )
        return Account(
            id=account_id,
            user_id=user_id,
            email_address=request.address,
            protocol=self.kind,
            host=endpoint.host,
            port=endpoint.port,
            smtp_host=derive_smtp_host(endpoint.host),
            smtp_port=self._smtp.default_port,
            credential=request.credential,
            created_at=created_at,
        )

    def test_connection(self, request: ConnectionRequest) -> str:
        endpoint = resolve_imap_endpoint(
            request.address, request.host, request.port or self._imap.default_port
        )
        LOGGER.info("Testing IMAP login for %s at %s", request.address, endpoint.host)
        with self._imap_factory(
            endpoint,
            request.address,
            request.credential,
            mailbox=self._imap.mailbox,
            timeout=self._imap.timeout_seconds,
        ):
            pass
        return "IMAP Connection Successful"

    def send(self, account: Account, message: OutgoingMessage) -> str:
        endpoint = self.smtp_endpoint(account)
        with self._smtp_factory(
            endpoint,
            account.email_address,
            account.credential,
            timeout=self._smtp.timeout_seconds,
        ) as client:
            return client.send(message)

    def open_mailbox(self, account: Account) -> ImapClient:
        endpoint = resolve_imap_endpoint(
            account.email_address, account.host, account.port or self._imap.default_port
        )
        return self._imap_factory(
            endpoint,
            account.email_address,
            account.credential,
            mailbox=self._imap.mailbox,
            timeout=self._imap.timeout_seconds,
        )

    def smtp_endpoint(self, account: Account) -> TransportEndpoint:
        """Return the stored SMTP endpoint, deriving one for older rows."""
        host = account.smtp_host
        if not host:
            imap_host = resolve_imap_endpoint(account.email_address, account.host).host
            host = derive_smtp_host(imap_host)
            LOGGER.debug("Account %s has no SMTP host; derived %s", account.id, host)
        return TransportEndpoint(host=host, port=account.smtp_port or self._smtp.default_port)


__all__ = ["ImapSmtpProvider"]
