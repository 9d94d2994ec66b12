"""Transport adapters for external mailbox providers."""

from .imap_client import ImapClient, ImapError
from .resolver import derive_smtp_host, resolve_imap_endpoint
from .sendgrid_client import SendGridClient, SendGridError
from .smtp_client import SmtpClient, SmtpError

__all__ = [
    "ImapClient",
    "ImapError",
    "SendGridClient",
    "SendGridError",
    "SmtpClient",
    "SmtpError",
    "derive_smtp_host",
    "resolve_imap_endpoint",
]
