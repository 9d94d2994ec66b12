"""Client for the SendGrid transactional email HTTP API."""

from __future__ import annotations

import json
import logging
import time
from types import TracebackType
from typing import Any

import httpx

from ..core.config import SendGridSettings
from ..core.errors import AuthenticationError, NetworkError, ProviderLogicError
from ..core.models import OutgoingMessage
from .formatting import render_html_body

LOGGER = logging.getLogger(__name__)

CREDITS_PATH = "/v3/user/credits"
SEND_PATH = "/v3/mail/send"
INVALID_KEY_MESSAGE = "Invalid API Key"


class SendGridError(ProviderLogicError):
    """SendGrid declined a request; ``errors`` holds the structured body."""

    def __init__(self, message: str, errors: Any = None) -> None:
        super().__init__(message)
        self.errors = errors


class SendGridClient:
    """Thin synchronous client for the two SendGrid calls we rely on."""

    def __init__(
        self,
        settings: SendGridSettings,
        api_key: str,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Create an authenticated HTTP client for ``api_key``."""
        self._client = httpx.Client(
            base_url=settings.base_url,
            timeout=settings.timeout_seconds,
            transport=transport,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
        )

    def __enter__(self) -> SendGridClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Release pooled HTTP connections."""
        self._client.close()

    def check_credentials(self) -> None:
        """Validate the API key against the read-only credits endpoint."""
        try:
            response = self._client.get(CREDITS_PATH)
        except httpx.HTTPError as exc:
            raise NetworkError(f"SendGrid check failed: {exc}") from exc

        if response.is_success:
            return
        body = _safe_json(response)
        message = _first_error_message(body) or INVALID_KEY_MESSAGE
        LOGGER.info("SendGrid rejected API key (HTTP %s)", response.status_code)
        raise AuthenticationError(message)

    def send(self, from_address: str, message: OutgoingMessage) -> str:
        """Submit ``message`` and return the provider message identifier."""
        payload = {
            "personalizations": [{"to": [{"email": message.to}]}],
            "from": {"email": from_address},
            "subject": message.subject,
            "content": [
                {"type": "text/plain", "value": message.body},
                {"type": "text/html", "value": render_html_body(message.body)},
            ],
        }
        try:
            response = self._client.post(SEND_PATH, json=payload)
        except httpx.HTTPError as exc:
            raise NetworkError(f"SendGrid request failed: {exc}") from exc

        if not response.is_success:
            body = _safe_json(response)
            LOGGER.warning(
                "SendGrid send to %s failed with HTTP %s", message.to, response.status_code
            )
            raise SendGridError(f"SendGrid Error: {json.dumps(body)}", errors=body)

        message_id = response.headers.get("X-Message-Id")
        if not message_id:
            message_id = f"sg-{int(time.time() * 1000)}"
        LOGGER.info("SendGrid accepted message to %s (%s)", message.to, message_id)
        return message_id


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {}


def _first_error_message(body: Any) -> str | None:
    if not isinstance(body, dict):
        return None
    errors = body.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        message = errors[0].get("message")
        if isinstance(message, str) and message:
            return message
    return None


__all__ = ["INVALID_KEY_MESSAGE", "SendGridClient", "SendGridError"]
