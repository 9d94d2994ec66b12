"""Error taxonomy shared by transports and services."""

from __future__ import annotations


class NexusMailError(RuntimeError):
    """Base class for failures raised by NexusMail components."""


class ConfigurationError(NexusMailError):
    """A required transport parameter is missing and cannot be defaulted."""


class AuthenticationError(NexusMailError):
    """The provider rejected the supplied credentials."""


class NetworkError(NexusMailError):
    """The provider could not be reached (refused, timeout, DNS failure)."""


class ProviderLogicError(NexusMailError):
    """The provider answered at the transport level but declined the operation."""


class ParseError(NexusMailError):
    """A fetched message could not be normalized."""


class AccountNotFoundError(NexusMailError):
    """No account with the given identifier belongs to the caller."""

    def __init__(self, message: str = "Account not found") -> None:
        super().__init__(message)


class SyncError(NexusMailError):
    """A synchronization call failed; the message carries the cause."""


class SendError(NexusMailError):
    """An outbound submission was rejected or could not be delivered."""


__all__ = [
    "AccountNotFoundError",
    "AuthenticationError",
    "ConfigurationError",
    "NetworkError",
    "NexusMailError",
    "ParseError",
    "ProviderLogicError",
    "SendError",
    "SyncError",
]
