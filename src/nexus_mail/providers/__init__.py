"""Provider variants, one per supported protocol kind."""

from __future__ import annotations

from collections.abc import Mapping

import httpx

from ..core.config import AppSettings
from ..core.errors import ConfigurationError
from ..core.interfaces import MailProvider
from ..core.models import ProtocolKind
from .imap_smtp import ImapFactory, ImapSmtpProvider, SmtpFactory
from .sendgrid import SendGridProvider

ProviderRegistry = Mapping[ProtocolKind, MailProvider]


def build_providers(
    settings: AppSettings,
    *,
    imap_factory: ImapFactory | None = None,
    smtp_factory: SmtpFactory | None = None,
    http_transport: httpx.BaseTransport | None = None,
) -> dict[ProtocolKind, MailProvider]:
    """Return the registry of every supported provider variant."""
    imap_smtp_options = {}
    if imap_factory is not None:
        imap_smtp_options["imap_factory"] = imap_factory
    if smtp_factory is not None:
        imap_smtp_options["smtp_factory"] = smtp_factory
    return {
        ProtocolKind.IMAP_SMTP: ImapSmtpProvider(
            settings.imap, settings.smtp, **imap_smtp_options
        ),
        ProtocolKind.TRANSACTIONAL_HTTP: SendGridProvider(
            settings.sendgrid, transport=http_transport
        ),
    }


def provider_for(providers: ProviderRegistry, kind: ProtocolKind) -> MailProvider:
    """Return the provider registered for ``kind``."""
    try:
        return providers[kind]
    except KeyError as exc:
        raise ConfigurationError(f"Unsupported protocol '{kind}'") from exc


__all__ = [
    "ImapSmtpProvider",
    "ProviderRegistry",
    "SendGridProvider",
    "build_providers",
    "provider_for",
]
