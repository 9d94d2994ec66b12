"""Protocol interfaces for decoupling components."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from types import TracebackType
from typing import Protocol

from .models import (
    Account,
    AccountStatus,
    ConnectionRequest,
    Message,
    MessageChunk,
    OutgoingMessage,
    ParsedMessage,
    ProtocolKind,
)


class MailboxSession(Protocol):
    """Scoped protocol session over a remote mailbox."""

    def __enter__(self) -> MailboxSession:
        """Open the session; raises if the handshake fails."""
        raise NotImplementedError

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Close the session on every exit path."""
        raise NotImplementedError

    def fetch_recent(self, limit: int) -> Iterable[MessageChunk]:
        """Yield the ``limit`` most recent messages in ascending UID order."""
        raise NotImplementedError


class MailProvider(Protocol):
    """Capability set shared by every supported protocol kind."""

    kind: ProtocolKind

    def build_account(
        self,
        request: ConnectionRequest,
        *,
        account_id: str,
        user_id: str,
        created_at: datetime,
    ) -> Account:
        """Return a new account record with this variant's transport fields."""
        raise NotImplementedError

    def test_connection(self, request: ConnectionRequest) -> str:
        """Perform a live handshake and return a success message."""
        raise NotImplementedError

    def send(self, account: Account, message: OutgoingMessage) -> str:
        """Submit ``message`` and return the provider message identifier."""
        raise NotImplementedError

    def open_mailbox(self, account: Account) -> MailboxSession | None:
        """Return a mailbox session, or ``None`` for push-only transports."""
        raise NotImplementedError


class EmailParserProtocol(Protocol):
    """Minimal protocol implemented by email parsers."""

    def parse(self, remote_id: str, payload: bytes) -> ParsedMessage:
        """Convert raw RFC822 payload into normalized fields."""
        raise NotImplementedError


class AccountRepository(Protocol):
    """Abstraction for account persistence."""

    def get_account(self, account_id: str, user_id: str) -> Account | None:
        """Return the account when it belongs to ``user_id``."""
        raise NotImplementedError

    def list_accounts(self, user_id: str) -> list[Account]:
        """Return every account owned by ``user_id``."""
        raise NotImplementedError

    def create_account(self, account: Account) -> Account:
        """Persist a new account and return the stored record."""
        raise NotImplementedError

    def delete_account(self, account_id: str, user_id: str) -> bool:
        """Remove an account and its messages. Returns ``True`` if deleted."""
        raise NotImplementedError

    def update_account_status(
        self,
        account_id: str,
        status: AccountStatus,
        *,
        last_error: str | None = None,
        last_sync_at: datetime | None = None,
    ) -> None:
        """Write the health fields of an account."""
        raise NotImplementedError


class MessageRepository(Protocol):
    """Abstraction for ingested message persistence."""

    def message_exists(self, account_id: str, remote_id: str) -> bool:
        """Return whether a message with ``remote_id`` is already stored."""
        raise NotImplementedError

    def insert_message(self, message: Message) -> bool:
        """Insert ``message`` unless the remote identifier is already stored."""
        raise NotImplementedError

    def list_messages(
        self, user_id: str, *, account_id: str | None = None, limit: int = 50
    ) -> list[Message]:
        """Return newest messages first."""
        raise NotImplementedError

    def set_message_read(self, message_id: str, user_id: str, is_read: bool) -> bool:
        """Update the read flag. Returns ``True`` if a row changed."""
        raise NotImplementedError

    def delete_message(self, message_id: str, user_id: str) -> bool:
        """Remove a single message. Returns ``True`` if deleted."""
        raise NotImplementedError


class MailRepository(AccountRepository, MessageRepository, Protocol):
    """Combined store handle threaded into every operation."""


__all__ = [
    "AccountRepository",
    "EmailParserProtocol",
    "MailProvider",
    "MailRepository",
    "MailboxSession",
    "MessageRepository",
]
