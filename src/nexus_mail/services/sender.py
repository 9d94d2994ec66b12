"""Outbound message dispatch through an account's transport."""

from __future__ import annotations

import logging

from ..core.errors import AccountNotFoundError, NexusMailError, SendError
from ..core.interfaces import AccountRepository
from ..core.models import OutgoingMessage, SendResult
from ..providers import ProviderRegistry, provider_for

LOGGER = logging.getLogger(__name__)


class OutboundSender:
    """Send through SMTP or the transactional API depending on the account."""

    def __init__(self, accounts: AccountRepository, providers: ProviderRegistry) -> None:
        self._accounts = accounts
        self._providers = providers

    def send(
        self, user_id: str, account_id: str, to: str, subject: str, body: str
    ) -> SendResult:
        """Submit a message and return the provider message identifier.

        Nothing is persisted here; a local copy of the sent message is the
        caller's concern. Raises :class:`SendError` on any failure.
        """
        account = self._accounts.get_account(account_id, user_id)
        if account is None:
            raise SendError(str(AccountNotFoundError()))
        if not to:
            raise SendError("Recipient address is required")

        message = OutgoingMessage(to=to, subject=subject, body=body)
        try:
            provider = provider_for(self._providers, account.protocol)
            message_id = provider.send(account, message)
        except NexusMailError as exc:
            LOGGER.warning("Send from account %s failed: %s", account.id, exc)
            raise SendError(str(exc) or "Send failed") from exc
        return SendResult(message_id=message_id)


__all__ = ["OutboundSender"]
