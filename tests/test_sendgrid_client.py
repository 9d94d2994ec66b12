"""Tests for the SendGrid HTTP client."""

from __future__ import annotations

import json

import httpx
import pytest

from nexus_mail.core.config import SendGridSettings
from nexus_mail.core.errors import AuthenticationError, NetworkError
from nexus_mail.core.models import OutgoingMessage
from nexus_mail.transport import SendGridClient, SendGridError


def _client(handler) -> SendGridClient:
    return SendGridClient(
        SendGridSettings(), "SG.key", transport=httpx.MockTransport(handler)
    )


def test_check_credentials_accepts_valid_key() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"remain": 100})

    with _client(handler) as client:
        client.check_credentials()

    assert seen[0].url.path == "/v3/user/credits"
    assert seen[0].headers["Authorization"] == "Bearer SG.key"


def test_check_credentials_reports_provider_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            401, json={"errors": [{"field": None, "message": "authorization required"}]}
        )

    with _client(handler) as client:
        with pytest.raises(AuthenticationError, match="authorization required"):
            client.check_credentials()


def test_check_credentials_defaults_to_invalid_api_key() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, text="forbidden")

    with _client(handler) as client:
        with pytest.raises(AuthenticationError, match="Invalid API Key"):
            client.check_credentials()


def test_check_credentials_transport_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with _client(handler) as client:
        with pytest.raises(NetworkError, match="SendGrid check failed"):
            client.check_credentials()


def test_send_posts_text_and_html_content() -> None:
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(202, headers={"X-Message-Id": "abc123"})

    message = OutgoingMessage(to="bob@example.com", subject="Hi", body="a < b\nbye")
    with _client(handler) as client:
        message_id = client.send("alice@example.com", message)

    assert message_id == "abc123"
    assert captured["path"] == "/v3/mail/send"
    body = captured["body"]
    assert body["personalizations"] == [{"to": [{"email": "bob@example.com"}]}]
    assert body["from"] == {"email": "alice@example.com"}
    assert body["subject"] == "Hi"
    assert body["content"] == [
        {"type": "text/plain", "value": "a < b\nbye"},
        {"type": "text/html", "value": "a &lt; b<br>bye"},
    ]


def test_send_without_message_id_header_synthesizes_one() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(202)

    message = OutgoingMessage(to="bob@example.com", subject="Hi", body="x")
    with _client(handler) as client:
        assert client.send("alice@example.com", message).startswith("sg-")


def test_send_error_carries_structured_body() -> None:
    errors = {"errors": [{"message": "The from address does not match a verified Sender"}]}

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json=errors)

    message = OutgoingMessage(to="bob@example.com", subject="Hi", body="x")
    with _client(handler) as client:
        with pytest.raises(SendGridError) as excinfo:
            client.send("alice@example.com", message)

    assert str(excinfo.value).startswith("SendGrid Error: ")
    assert excinfo.value.errors == errors
