"""Endpoint resolution for IMAP and SMTP hosts of linked accounts."""

from __future__ import annotations

from collections.abc import Mapping

from ..core.errors import ConfigurationError
from ..core.models import TransportEndpoint

DEFAULT_IMAP_PORT = 993

OUTLOOK_IMAP_HOST = "outlook.office365.com"
OUTLOOK_SMTP_HOST = "smtp.office365.com"

# Consumer providers whose IMAP host cannot be guessed from the domain.
WELL_KNOWN_IMAP_HOSTS: Mapping[str, str] = {
    "gmail.com": "imap.gmail.com",
    "googlemail.com": "imap.gmail.com",
    "outlook.com": OUTLOOK_IMAP_HOST,
    "office365.com": OUTLOOK_IMAP_HOST,
    "hotmail.com": OUTLOOK_IMAP_HOST,
    "live.com": OUTLOOK_IMAP_HOST,
    "yahoo.com": "imap.mail.yahoo.com",
    "icloud.com": "imap.mail.me.com",
    "me.com": "imap.mail.me.com",
}


def address_domain(address: str) -> str:
    """Return the lower-cased domain part of ``address``."""
    _, _, domain = address.strip().rpartition("@")
    if not domain or "@" not in address:
        raise ConfigurationError(f"Cannot derive a mail host from '{address}'")
    return domain.lower()


def resolve_imap_endpoint(
    address: str, host: str | None = None, port: int | None = None
) -> TransportEndpoint:
    """Return the IMAP endpoint for ``address``, honouring explicit values."""
    final_port = port or DEFAULT_IMAP_PORT
    if host:
        return TransportEndpoint(host=host, port=final_port)
    domain = address_domain(address)
    final_host = WELL_KNOWN_IMAP_HOSTS.get(domain, f"imap.{domain}")
    return TransportEndpoint(host=final_host, port=final_port)


def derive_smtp_host(imap_host: str) -> str:
    """Guess the SMTP submission host that pairs with ``imap_host``."""
    lowered = imap_host.lower()
    if "outlook" in lowered or "office365" in lowered:
        return OUTLOOK_SMTP_HOST
    if lowered.startswith("imap."):
        return "smtp." + imap_host[len("imap.") :]
    return imap_host.replace("imap.", "smtp.", 1)


__all__ = [
    "DEFAULT_IMAP_PORT",
    "WELL_KNOWN_IMAP_HOSTS",
    "address_domain",
    "derive_smtp_host",
    "resolve_imap_endpoint",
]
