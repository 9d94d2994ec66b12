"""Mail synchronization orchestration logic."""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable

from ..core.datetime_utils import utcnow
from ..core.errors import NexusMailError, ParseError, SyncError
from ..core.interfaces import EmailParserProtocol, MailboxSession, MailRepository
from ..core.models import Account, AccountStatus, Message, SyncResult
from ..providers import ProviderRegistry, provider_for

LOGGER = logging.getLogger(__name__)


class MessageSynchronizer:
    """Pull recent messages for an account, dedupe, store, and track health.

    Fetch policy: the ``fetch_limit`` most recent messages by UID, processed
    in ascending UID order.
    """

    def __init__(
        self,
        repository: MailRepository,
        providers: ProviderRegistry,
        parser: EmailParserProtocol,
        *,
        fetch_limit: int = 5,
        time_budget_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialise the synchronizer with storage, providers, and parser."""
        if fetch_limit <= 0:
            raise ValueError("fetch_limit must be positive")
        self._repository = repository
        self._providers = providers
        self._parser = parser
        self._fetch_limit = fetch_limit
        self._time_budget = time_budget_seconds
        self._clock = clock

    def sync(self, user_id: str, account_id: str, *, silent: bool = False) -> SyncResult:
        """Execute one synchronization pass and return the inserted count.

        ``silent`` skips the transient ``syncing`` status write used by
        interactive callers; background callers pass ``True``.
        """
        account = self._repository.get_account(account_id, user_id)
        if account is None:
            raise SyncError("Account not found")

        try:
            provider = provider_for(self._providers, account.protocol)
            session = provider.open_mailbox(account)
        except NexusMailError as exc:
            self._record_failure(account.id, str(exc))
            raise SyncError(str(exc)) from exc

        if session is None:
            LOGGER.debug("Account %s has no mailbox to pull; skipping", account.id)
            return SyncResult(count=0)

        try:
            if not silent:
                self._repository.update_account_status(
                    account.id, AccountStatus.SYNCING, last_error=account.last_error
                )
            count = self._pull(account, session)
        except Exception as exc:  # pylint: disable=broad-except
            message = str(exc) or "Sync failed"
            LOGGER.error("Sync failed for account %s: %s", account.id, message)
            self._record_failure(account.id, message)
            raise SyncError(message) from exc

        try:
            self._repository.update_account_status(
                account.id, AccountStatus.CONNECTED, last_error=None, last_sync_at=utcnow()
            )
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.error("Failed to record sync success for %s: %s", account.id, exc)
            self._record_failure(account.id, f"Failed to record sync status: {exc}")
            raise SyncError(f"Failed to record sync status: {exc}") from exc

        LOGGER.info("Sync completed for account %s: inserted=%s", account.id, count)
        return SyncResult(count=count)

    def _pull(self, account: Account, session: MailboxSession) -> int:
        deadline = self._clock() + self._time_budget
        inserted = 0
        skipped = 0

        with session as mailbox:
            for chunk in mailbox.fetch_recent(self._fetch_limit):
                if self._clock() > deadline:
                    LOGGER.warning(
                        "Sync budget of %ss exhausted for account %s; "
                        "remaining messages wait for the next pass",
                        self._time_budget,
                        account.id,
                    )
                    break

                remote_id = str(chunk.uid)
                try:
                    parsed = self._parser.parse(remote_id, chunk.raw)
                except ParseError as exc:
                    LOGGER.warning("Skipping message %s: %s", remote_id, exc)
                    skipped += 1
                    continue

                # Checked per message: a concurrent sync may have stored it.
                if self._repository.message_exists(account.id, remote_id):
                    LOGGER.debug("Message %s already stored", remote_id)
                    continue

                stored = self._repository.insert_message(
                    Message(
                        id=uuid.uuid4().hex,
                        account_id=account.id,
                        user_id=account.user_id,
                        remote_id=remote_id,
                        from_address=parsed.from_address,
                        subject=parsed.subject,
                        body_text=parsed.body,
                        received_at=parsed.received_at,
                        is_read=False,
                    )
                )
                if stored:
                    inserted += 1

        if skipped:
            LOGGER.info("Skipped %s unparseable message(s) for %s", skipped, account.id)
        return inserted

    def _record_failure(self, account_id: str, message: str) -> None:
        """Best-effort error status write; never masks the original failure."""
        try:
            self._repository.update_account_status(
                account_id, AccountStatus.ERROR, last_error=message
            )
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.error("Failed to update account %s error status: %s", account_id, exc)


__all__ = ["MessageSynchronizer"]
