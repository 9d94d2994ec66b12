"""SendGrid transactional HTTP provider variant."""

from __future__ import annotations

import logging
from datetime import datetime

import httpx

from ..core.config import SendGridSettings
from ..core.models import Account, ConnectionRequest, OutgoingMessage, ProtocolKind
from ..transport.sendgrid_client import SendGridClient

LOGGER = logging.getLogger(__name__)


class SendGridProvider:
    """Push-only provider: sends over HTTP and has nothing to pull."""

    kind = ProtocolKind.TRANSACTIONAL_HTTP

    def __init__(
        self,
        settings: SendGridSettings,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    def build_account(
        self,
        request: ConnectionRequest,
        *,
        account_id: str,
        user_id: str,
        created_at: datetime,
    ) -> Account:
        """Return a new account; SendGrid has no host/port to record."""
        return Account(
            id=account_id,
            user_id=user_id,
            email_address=request.address,
            protocol=self.kind,
            host=None,
            port=None,
            smtp_host=None,
            smtp_port=None,
            credential=request.credential,
            created_at=created_at,
        )

    def test_connection(self, request: ConnectionRequest) -> str:
        LOGGER.info("Testing SendGrid API key for %s", request.address)
        with self._client(request.credential) as client:
            client.check_credentials()
        return "SendGrid Connection Successful"

    def send(self, account: Account, message: OutgoingMessage) -> str:
        with self._client(account.credential) as client:
            return client.send(account.email_address, message)

    def open_mailbox(self, account: Account) -> None:
        LOGGER.debug("Account %s is push-only; nothing to pull", account.id)
        return None

    def _client(self, api_key: str) -> SendGridClient:
        return SendGridClient(self._settings, api_key, transport=self._transport)


__all__ = ["SendGridProvider"]
