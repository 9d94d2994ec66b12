"""Utilities for parsing raw RFC822 messages into normalized records."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from email import policy
from email.errors import MessageError
from email.message import EmailMessage
from email.parser import BytesParser

from ..core.datetime_utils import ensure_utc, utcnow
from ..core.errors import ParseError
from ..core.models import ParsedMessage

UNKNOWN_SENDER = "unknown"
NO_SUBJECT = "(No Subject)"
NO_CONTENT = "(No Content)"


class EmailParser:
    """Convert raw email payloads into :class:`ParsedMessage` records."""

    def __init__(self) -> None:
        """Prepare internal parser instance."""
        self._parser = BytesParser(policy=policy.default)

    def parse(self, remote_id: str, payload: bytes) -> ParsedMessage:
        """Parse raw RFC822 bytes, raising :class:`ParseError` when malformed."""
        if not payload or not payload.strip():
            raise ParseError(f"Message {remote_id} has an empty payload")
        try:
            message = self._parser.parsebytes(payload)
            if not message.keys():
                raise ParseError(f"Message {remote_id} has no headers")
            sender = message.get("From")
            subject = message.get("Subject")
            received_at = _try_parse_datetime(message)
            text, html = _extract_bodies(message)
        except ParseError:
            raise
        except (MessageError, LookupError, TypeError, ValueError) as exc:
            raise ParseError(f"Message {remote_id} could not be parsed: {exc}") from exc

        return ParsedMessage(
            from_address=str(sender).strip() if sender else UNKNOWN_SENDER,
            subject=str(subject).strip() if subject else NO_SUBJECT,
            body=text or html or NO_CONTENT,
            received_at=received_at or utcnow(),
        )


def _collapse_chunks(chunks: Iterable[str], separator: str) -> str | None:
    filtered_chunks = [chunk for chunk in chunks if chunk]
    if not filtered_chunks:
        return None
    return separator.join(filtered_chunks)


def _extract_bodies(message: EmailMessage) -> tuple[str | None, str | None]:
    plain_chunks: list[str] = []
    html_chunks: list[str] = []

    for part in message.walk():
        if part.is_multipart():
            continue
        if part.get_content_disposition() == "attachment":
            continue
        content_type = part.get_content_type()
        if content_type not in ("text/plain", "text/html"):
            continue
        try:
            content_obj = part.get_content()
        except LookupError:
            # Unknown charset on one part; keep whatever else decodes.
            continue
        if not isinstance(content_obj, str):
            continue
        content = content_obj.strip()
        if content_type == "text/plain":
            plain_chunks.append(content)
        else:
            html_chunks.append(content)

    text = _collapse_chunks(plain_chunks, "\n\n")
    html = _collapse_chunks(html_chunks, "\n")
    return text, html


def _try_parse_datetime(message: EmailMessage) -> datetime | None:
    header = message.get("Date")
    if header is None:
        return None
    try:
        value = getattr(header, "datetime", None)
    except (TypeError, ValueError):
        return None
    return ensure_utc(value) if isinstance(value, datetime) else None


__all__ = ["EmailParser", "NO_CONTENT", "NO_SUBJECT", "UNKNOWN_SENDER"]
