"""Request/response boundary exposing the mail operations to callers."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..core.config import AppSettings
from ..core.datetime_utils import serialize_datetime, utcnow
from ..core.errors import NexusMailError
from ..core.interfaces import EmailParserProtocol, MailRepository
from ..core.models import Account, ConnectionRequest, Message
from ..ingestion import EmailParser
from ..providers import ProviderRegistry, provider_for
from .sender import OutboundSender
from .synchronizer import MessageSynchronizer
from .tester import ConnectionTester

LOGGER = logging.getLogger(__name__)

HEALTHY_MESSAGE = "Service is healthy"


@dataclass(frozen=True, slots=True)
class OperationResult:
    """Tagged success/failure result returned by every handler operation."""

    success: bool
    error: str | None = None
    message: str | None = None
    message_id: str | None = None
    count: int | None = None
    data: Any = None
    not_found: bool = False

    @classmethod
    def failure(cls, error: str) -> OperationResult:
        """Return a failed result carrying ``error``."""
        return cls(success=False, error=error)

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON shape sent back to callers."""
        payload: dict[str, Any] = {"success": self.success}
        if self.error is not None:
            payload["error"] = self.error
        if self.message is not None:
            payload["message"] = self.message
        if self.message_id is not None:
            payload["messageId"] = self.message_id
        if self.count is not None:
            payload["count"] = self.count
        if self.data is not None:
            payload["data"] = self.data
        return payload


class EmailHandler:
    """Run test/send/sync and account housekeeping against a store handle.

    Every public method returns an :class:`OperationResult`; no transport
    or storage exception escapes.
    """

    def __init__(
        self,
        repository: MailRepository,
        providers: ProviderRegistry,
        settings: AppSettings,
        *,
        parser: EmailParserProtocol | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._repository = repository
        self._providers = providers
        self._tester = ConnectionTester(providers)
        self._sender = OutboundSender(repository, providers)
        sync_options: dict[str, Any] = {}
        if clock is not None:
            sync_options["clock"] = clock
        self._synchronizer = MessageSynchronizer(
            repository,
            providers,
            parser or EmailParser(),
            fetch_limit=settings.sync.fetch_limit,
            time_budget_seconds=settings.sync.time_budget_seconds,
            **sync_options,
        )

    # Core operations ---------------------------------------------------------
    def health(self) -> OperationResult:
        return OperationResult(success=True, message=HEALTHY_MESSAGE)

    def test(self, request: ConnectionRequest) -> OperationResult:
        result = self._tester.test(request)
        if result.ok:
            return OperationResult(success=True, message=result.message)
        return OperationResult.failure(result.message)

    def send(
        self, user_id: str, account_id: str, to: str, subject: str, content: str
    ) -> OperationResult:
        try:
            sent = self._sender.send(user_id, account_id, to, subject, content)
        except NexusMailError as exc:
            return OperationResult.failure(str(exc) or "Send failed")
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.exception("Unexpected error sending from account %s", account_id)
            return OperationResult.failure(str(exc) or "Send failed")
        return OperationResult(success=True, message_id=sent.message_id)

    def sync(self, user_id: str, account_id: str, *, silent: bool = False) -> OperationResult:
        try:
            synced = self._synchronizer.sync(user_id, account_id, silent=silent)
        except NexusMailError as exc:
            return OperationResult.failure(str(exc) or "Sync failed")
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.exception("Unexpected error syncing account %s", account_id)
            return OperationResult.failure(str(exc) or "Sync failed")
        return OperationResult(success=True, count=synced.count)

    # Account housekeeping ----------------------------------------------------
    def create_account(self, user_id: str, request: ConnectionRequest) -> OperationResult:
        """Persist a new account only after its connection test passes."""
        tested = self._tester.test(request)
        if not tested.ok:
            return OperationResult.failure(tested.message)
        try:
            provider = provider_for(self._providers, request.protocol)
            account = provider.build_account(
                request,
                account_id=uuid.uuid4().hex,
                user_id=user_id,
                created_at=utcnow(),
            )
            stored = self._repository.create_account(account)
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.exception("Failed to create account for %s", request.address)
            return OperationResult.failure(str(exc) or "Account creation failed")
        LOGGER.info("Linked %s account %s", stored.protocol.value, stored.id)
        return OperationResult(
            success=True, message=tested.message, data=account_view(stored)
        )

    def list_accounts(self, user_id: str) -> OperationResult:
        return self._run(
            "list accounts",
            lambda: [account_view(a) for a in self._repository.list_accounts(user_id)],
        )

    def delete_account(self, user_id: str, account_id: str) -> OperationResult:
        return self._run_flag(
            "delete account",
            lambda: self._repository.delete_account(account_id, user_id),
            "Account not found",
        )

    def list_messages(
        self, user_id: str, *, account_id: str | None = None, limit: int = 50
    ) -> OperationResult:
        return self._run(
            "list messages",
            lambda: [
                message_view(m)
                for m in self._repository.list_messages(
                    user_id, account_id=account_id, limit=limit
                )
            ],
        )

    def mark_read(
        self, user_id: str, message_id: str, *, is_read: bool = True
    ) -> OperationResult:
        return self._run_flag(
            "mark message",
            lambda: self._repository.set_message_read(message_id, user_id, is_read),
            "Message not found",
        )

    def delete_message(self, user_id: str, message_id: str) -> OperationResult:
        return self._run_flag(
            "delete message",
            lambda: self._repository.delete_message(message_id, user_id),
            "Message not found",
        )

    # Internal helpers --------------------------------------------------------
    def _run(self, label: str, action: Callable[[], Any]) -> OperationResult:
        try:
            data = action()
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.exception("Failed to %s", label)
            return OperationResult.failure(str(exc) or f"Failed to {label}")
        return OperationResult(success=True, data=data)

    def _run_flag(
        self, label: str, action: Callable[[], bool], missing: str
    ) -> OperationResult:
        result = self._run(label, action)
        if result.success and not result.data:
            return OperationResult(success=False, error=missing, not_found=True)
        return OperationResult(success=result.success, error=result.error)


def account_view(account: Account) -> dict[str, Any]:
    """Public representation of an account; the credential is never included."""
    return {
        "id": account.id,
        "emailAddress": account.email_address,
        "protocol": account.protocol.value,
        "host": account.host,
        "port": account.port,
        "smtpHost": account.smtp_host,
        "smtpPort": account.smtp_port,
        "status": account.status.value,
        "lastSyncAt": serialize_datetime(account.last_sync_at),
        "lastError": account.last_error,
        "createdAt": serialize_datetime(account.created_at),
    }


def message_view(message: Message) -> dict[str, Any]:
    """Public representation of an ingested message."""
    return {
        "id": message.id,
        "accountId": message.account_id,
        "remoteId": message.remote_id,
        "from": message.from_address,
        "subject": message.subject,
        "content": message.body_text,
        "date": serialize_datetime(message.received_at),
        "isRead": message.is_read,
    }


__all__ = ["EmailHandler", "OperationResult", "account_view", "message_view"]
