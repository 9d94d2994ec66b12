"""Core domain models used across the application."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class ProtocolKind(str, Enum):
    """Transport family backing a linked account."""

    IMAP_SMTP = "imap-smtp"
    TRANSACTIONAL_HTTP = "transactional-http"


class AccountStatus(str, Enum):
    """Health states for a linked account."""

    CONNECTED = "connected"
    SYNCING = "syncing"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class TransportEndpoint:
    """Concrete host/port pair for a protocol session."""

    host: str
    port: int


@dataclass(frozen=True, slots=True)
class ConnectionRequest:
    """Candidate account configuration that has not been persisted yet."""

    protocol: ProtocolKind
    address: str
    credential: str = field(repr=False)
    host: str | None = None
    port: int | None = None


# pylint: disable=too-many-instance-attributes
@dataclass(slots=True)
class Account:
    """One linked mailbox with its transport parameters and health."""

    id: str
    user_id: str
    email_address: str
    protocol: ProtocolKind
    host: str | None
    port: int | None
    smtp_host: str | None
    smtp_port: int | None
    credential: str = field(repr=False)
    status: AccountStatus = AccountStatus.CONNECTED
    last_sync_at: datetime | None = None
    last_error: str | None = None
    created_at: datetime | None = None


@dataclass(slots=True)
class Message:
    """One ingested email owned by an account."""

    id: str
    account_id: str
    user_id: str
    remote_id: str
    from_address: str
    subject: str
    body_text: str
    received_at: datetime
    is_read: bool = False


@dataclass(slots=True)
class MessageChunk:
    """Raw IMAP payload paired with its UID."""

    uid: int
    raw: bytes


@dataclass(slots=True)
class ParsedMessage:
    """Normalized fields extracted from a raw RFC822 payload."""

    from_address: str
    subject: str
    body: str
    received_at: datetime


@dataclass(frozen=True, slots=True)
class OutgoingMessage:
    """Fields of a message submitted through an account's transport."""

    to: str
    subject: str
    body: str


@dataclass(frozen=True, slots=True)
class ConnectionTestResult:
    """Outcome of a dry-run connection test."""

    ok: bool
    message: str


@dataclass(frozen=True, slots=True)
class SyncResult:
    """Outcome summary for a synchronization call."""

    count: int


@dataclass(frozen=True, slots=True)
class SendResult:
    """Provider-assigned identifier of a submitted message."""

    message_id: str


__all__ = [
    "Account",
    "AccountStatus",
    "ConnectionRequest",
    "ConnectionTestResult",
    "Message",
    "MessageChunk",
    "OutgoingMessage",
    "ParsedMessage",
    "ProtocolKind",
    "SendResult",
    "SyncResult",
    "TransportEndpoint",
]
