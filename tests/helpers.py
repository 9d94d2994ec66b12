"""Test doubles and sample payloads shared across the test modules."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from nexus_mail.core.errors import NexusMailError
from nexus_mail.core.models import MessageChunk, OutgoingMessage, TransportEndpoint

USER_ID = "user-1"


def rfc822(uid: int, subject: str | None = None) -> bytes:
    """Return a small well-formed message for ``uid``."""
    return (
        f"From: sender{uid}@example.com\r\n"
        f"To: me@example.com\r\n"
        f"Subject: {subject or f'Message {uid}'}\r\n"
        f"Date: Mon, 01 Jan 2024 10:00:{uid % 60:02d} +0000\r\n"
        "\r\n"
        f"Body of message {uid}\r\n"
    ).encode()


class FakeMailbox:
    """Stands in for ``ImapClient``: serves a fixed list of UID payloads."""

    def __init__(
        self,
        messages: dict[int, bytes],
        *,
        fail_on_enter: NexusMailError | None = None,
        fail_after: int | None = None,
        fail_with: NexusMailError | None = None,
    ) -> None:
        self.messages = messages
        self.fail_on_enter = fail_on_enter
        self.fail_after = fail_after
        self.fail_with = fail_with
        self.opened = 0
        self.closed = 0
        self.endpoints: list[TransportEndpoint] = []

    def __call__(
        self, endpoint: TransportEndpoint, username: str, password: str, **_: Any
    ) -> FakeMailbox:
        self.endpoints.append(endpoint)
        return self

    def __enter__(self) -> FakeMailbox:
        if self.fail_on_enter is not None:
            raise self.fail_on_enter
        self.opened += 1
        return self

    def __exit__(self, *args: object) -> None:
        self.closed += 1

    def fetch_recent(self, limit: int) -> Iterator[MessageChunk]:
        for served, uid in enumerate(sorted(self.messages)[-limit:]):
            if self.fail_after is not None and served >= self.fail_after:
                raise self.fail_with or NexusMailError("connection dropped")
            yield MessageChunk(uid=uid, raw=self.messages[uid])


class FakeSmtp:
    """Stands in for ``SmtpClient``: records submissions or raises ``error``."""

    def __init__(self, *, error: NexusMailError | None = None) -> None:
        self.error = error
        self.sent: list[OutgoingMessage] = []
        self.endpoints: list[TransportEndpoint] = []

    def __call__(
        self, endpoint: TransportEndpoint, username: str, password: str, **_: Any
    ) -> FakeSmtp:
        self.endpoints.append(endpoint)
        return self

    def __enter__(self) -> FakeSmtp:
        return self

    def __exit__(self, *args: object) -> None:
        return None

    def send(self, message: OutgoingMessage) -> str:
        if self.error is not None:
            raise self.error
        self.sent.append(message)
        return f"<{len(self.sent)}@smtp.test>"
