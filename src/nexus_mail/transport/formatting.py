"""Body renderings shared by the outbound transports."""

from __future__ import annotations

import html


def render_html_body(text: str) -> str:
    """Return ``text`` HTML-escaped with newlines turned into ``<br>``."""
    escaped = html.escape(text, quote=False)
    return escaped.replace("\r\n", "\n").replace("\n", "<br>")


__all__ = ["render_html_body"]
