"""TLS settings shared by the IMAP and SMTP sessions."""

from __future__ import annotations

import ssl


def create_tls_context() -> ssl.SSLContext:
    """Return a certificate- and hostname-verifying context, TLS 1.2 or newer."""
    context = ssl.create_default_context()
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    return context


__all__ = ["create_tls_context"]
