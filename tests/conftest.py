"""Shared fixtures: temporary storage and scripted mailbox transports."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import datetime, timezone
from pathlib import Path

import httpx
import pytest

from nexus_mail.core.config import AppSettings, StorageSettings
from nexus_mail.core.models import Account, ProtocolKind
from nexus_mail.providers import build_providers
from nexus_mail.storage import SqliteMailRepository

from helpers import USER_ID, FakeMailbox, FakeSmtp, rfc822


@pytest.fixture()
def settings(tmp_path: Path) -> AppSettings:
    return AppSettings(storage=StorageSettings(db_path=tmp_path / "mail.db", pool_size=2))


@pytest.fixture()
def repository(settings: AppSettings) -> Iterator[SqliteMailRepository]:
    with SqliteMailRepository(settings.storage) as repo:
        yield repo


@pytest.fixture()
def mailbox() -> FakeMailbox:
    return FakeMailbox({101: rfc822(101), 102: rfc822(102), 103: rfc822(103)})


@pytest.fixture()
def smtp() -> FakeSmtp:
    return FakeSmtp()


@pytest.fixture()
def sendgrid_requests() -> list[httpx.Request]:
    return []


@pytest.fixture()
def providers(
    settings: AppSettings,
    mailbox: FakeMailbox,
    smtp: FakeSmtp,
    sendgrid_requests: list[httpx.Request],
):
    def handler(request: httpx.Request) -> httpx.Response:
        sendgrid_requests.append(request)
        if request.headers["Authorization"] != "Bearer SG.good":
            return httpx.Response(401, json={"errors": [{"message": "Invalid API Key"}]})
        if request.url.path == "/v3/mail/send":
            return httpx.Response(202, headers={"X-Message-Id": "sg-message"})
        return httpx.Response(200, json={})

    return build_providers(
        settings,
        imap_factory=mailbox,
        smtp_factory=smtp,
        http_transport=httpx.MockTransport(handler),
    )


@pytest.fixture()
def make_account(repository: SqliteMailRepository) -> Callable[..., Account]:
    def factory(
        account_id: str = "acct-1",
        *,
        protocol: ProtocolKind = ProtocolKind.IMAP_SMTP,
        email_address: str = "me@example.com",
        credential: str = "app-password",
        user_id: str = USER_ID,
    ) -> Account:
        is_imap = protocol is ProtocolKind.IMAP_SMTP
        account = Account(
            id=account_id,
            user_id=user_id,
            email_address=email_address,
            protocol=protocol,
            host="imap.example.com" if is_imap else None,
            port=993 if is_imap else None,
            smtp_host="smtp.example.com" if is_imap else None,
            smtp_port=587 if is_imap else None,
            credential=credential,
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        return repository.create_account(account)

    return factory
