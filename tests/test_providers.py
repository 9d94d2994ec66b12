"""Tests for provider variants and the connection tester."""

from __future__ import annotations

from datetime import datetime, timezone

from nexus_mail.core.config import AppSettings
from nexus_mail.core.errors import AuthenticationError, NetworkError
from nexus_mail.core.models import ConnectionRequest, ProtocolKind, TransportEndpoint
from nexus_mail.providers import ProviderRegistry, build_providers
from nexus_mail.services import ConnectionTester

from helpers import FakeMailbox

CREATED = datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_registry_covers_every_protocol_kind(settings: AppSettings) -> None:
    providers = build_providers(settings)
    assert set(providers) == set(ProtocolKind)
    for kind, provider in providers.items():
        assert provider.kind is kind


def test_imap_account_gets_resolved_and_derived_endpoints(
    providers: ProviderRegistry,
) -> None:
    request = ConnectionRequest(ProtocolKind.IMAP_SMTP, "me@gmail.com", "pw")

    account = providers[ProtocolKind.IMAP_SMTP].build_account(
        request, account_id="a1", user_id="u1", created_at=CREATED
    )

    assert (account.host, account.port) == ("imap.gmail.com", 993)
    assert (account.smtp_host, account.smtp_port) == ("smtp.gmail.com", 587)


def test_sendgrid_account_has_no_endpoints(providers: ProviderRegistry) -> None:
    request = ConnectionRequest(ProtocolKind.TRANSACTIONAL_HTTP, "me@example.com", "SG.good")

    account = providers[ProtocolKind.TRANSACTIONAL_HTTP].build_account(
        request, account_id="a1", user_id="u1", created_at=CREATED
    )

    assert account.host is None and account.smtp_host is None


def test_imap_test_connects_to_explicit_host(
    providers: ProviderRegistry, mailbox: FakeMailbox
) -> None:
    request = ConnectionRequest(
        ProtocolKind.IMAP_SMTP, "me@corp.example", "pw", host="mail.corp.example", port=1993
    )

    result = ConnectionTester(providers).test(request)

    assert result.ok
    assert result.message == "IMAP Connection Successful"
    assert mailbox.endpoints == [TransportEndpoint(host="mail.corp.example", port=1993)]
    assert mailbox.opened == mailbox.closed == 1


def test_imap_test_reports_failure_instead_of_raising(
    providers: ProviderRegistry, mailbox: FakeMailbox
) -> None:
    mailbox.fail_on_enter = NetworkError("Unable to reach IMAP server")

    result = ConnectionTester(providers).test(
        ConnectionRequest(ProtocolKind.IMAP_SMTP, "me@corp.example", "pw")
    )

    assert not result.ok
    assert result.message == "Unable to reach IMAP server"


def test_imap_test_with_unresolvable_address(providers: ProviderRegistry) -> None:
    result = ConnectionTester(providers).test(
        ConnectionRequest(ProtocolKind.IMAP_SMTP, "no-domain", "pw")
    )

    assert not result.ok
    assert "no-domain" in result.message


def test_sendgrid_test_outcomes(providers: ProviderRegistry) -> None:
    tester = ConnectionTester(providers)

    ok = tester.test(ConnectionRequest(ProtocolKind.TRANSACTIONAL_HTTP, "a@b.c", "SG.good"))
    bad = tester.test(ConnectionRequest(ProtocolKind.TRANSACTIONAL_HTTP, "a@b.c", "SG.bad"))

    assert ok.ok and ok.message == "SendGrid Connection Successful"
    assert not bad.ok and bad.message == "Invalid API Key"


def test_auth_failure_message_is_passed_through(
    providers: ProviderRegistry, mailbox: FakeMailbox
) -> None:
    mailbox.fail_on_enter = AuthenticationError("[AUTHENTICATIONFAILED] Invalid credentials")

    result = ConnectionTester(providers).test(
        ConnectionRequest(ProtocolKind.IMAP_SMTP, "me@gmail.com", "wrong")
    )

    assert result.message == "[AUTHENTICATIONFAILED] Invalid credentials"
