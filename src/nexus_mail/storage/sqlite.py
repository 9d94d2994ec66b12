"""SQLite-backed account and message repository implementation."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from types import TracebackType
from typing import cast

from ..core.config import StorageSettings
from ..core.datetime_utils import parse_datetime, serialize_datetime, utcnow
from ..core.interfaces import MailRepository
from ..core.models import Account, AccountStatus, Message, ProtocolKind

LOGGER = logging.getLogger(__name__)

SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS email_accounts (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        email_address TEXT NOT NULL,
        protocol TEXT NOT NULL CHECK (protocol IN ('imap-smtp', 'transactional-http')),
        host TEXT,
        port INTEGER,
        smtp_host TEXT,
        smtp_port INTEGER,
        auth_token TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'connected',
        last_sync_at TEXT,
        last_error TEXT,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS emails (
        id TEXT PRIMARY KEY,
        account_id TEXT NOT NULL REFERENCES email_accounts(id) ON DELETE CASCADE,
        user_id TEXT NOT NULL,
        remote_id TEXT NOT NULL,
        from_address TEXT NOT NULL,
        subject TEXT NOT NULL,
        body_text TEXT NOT NULL,
        received_at TEXT NOT NULL,
        is_read INTEGER NOT NULL DEFAULT 0,
        UNIQUE (account_id, remote_id)
    )
    """,
)

INDEX_STATEMENTS: tuple[str, ...] = (
    "CREATE INDEX IF NOT EXISTS idx_email_accounts_user ON email_accounts(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_emails_user_received ON emails(user_id, received_at DESC)",
)

_ACCOUNT_COLUMNS = """
    id, user_id, email_address, protocol, host, port, smtp_host, smtp_port,
    auth_token, status, last_sync_at, last_error, created_at
"""

_MESSAGE_COLUMNS = """
    id, account_id, user_id, remote_id, from_address, subject, body_text,
    received_at, is_read
"""


class SqliteMailRepository(MailRepository):
    """Persist linked accounts and ingested messages using SQLite."""

    def __init__(self, settings: StorageSettings) -> None:
        """Initialise the repository and apply the schema."""
        self._settings = settings
        db_path = Path(settings.db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = sqlite3.connect(
            db_path,
            detect_types=sqlite3.PARSE_DECLTYPES,
            check_same_thread=False,
            timeout=10.0,
        )
        self._connection.row_factory = sqlite3.Row
        self._enable_foreign_keys()
        self._apply_schema()

    # Context manager helpers -------------------------------------------------
    def __enter__(self) -> SqliteMailRepository:
        """Enter context manager scope."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Ensure the connection is closed when exiting context manager."""
        self.close()

    # AccountRepository API ---------------------------------------------------
    def get_account(self, account_id: str, user_id: str) -> Account | None:
        """Return the account when it belongs to ``user_id``."""
        cur = self._connection.execute(
            f"SELECT {_ACCOUNT_COLUMNS} FROM email_accounts WHERE id = ? AND user_id = ?",
            (account_id, user_id),
        )
        row = cur.fetchone()
        return _row_to_account(row) if row is not None else None

    def list_accounts(self, user_id: str) -> list[Account]:
        """Return the accounts owned by ``user_id`` in creation order."""
        cur = self._connection.execute(
            f"""
            SELECT {_ACCOUNT_COLUMNS} FROM email_accounts
            WHERE user_id = ?
            ORDER BY created_at, id
            """,
            (user_id,),
        )
        return [_row_to_account(row) for row in cur.fetchall()]

    def create_account(self, account: Account) -> Account:
        """Insert a new account row."""
        LOGGER.debug("Persisting account %s for user %s", account.id, account.user_id)
        if not account.credential:
            raise ValueError("Account credential is required")
        with self._connection:
            self._connection.execute(
                f"""
                INSERT INTO email_accounts ({_ACCOUNT_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    account.id,
                    account.user_id,
                    account.email_address,
                    account.protocol.value,
                    account.host,
                    account.port,
                    account.smtp_host,
                    account.smtp_port,
                    account.credential,
                    account.status.value,
                    serialize_datetime(account.last_sync_at),
                    account.last_error,
                    serialize_datetime(account.created_at or utcnow()),
                ),
            )
        return account

    def delete_account(self, account_id: str, user_id: str) -> bool:
        """Delete the account; messages are removed by the cascade."""
        LOGGER.debug("Deleting account %s for user %s", account_id, user_id)
        with self._connection:
            cur = self._connection.execute(
                "DELETE FROM email_accounts WHERE id = ? AND user_id = ?",
                (account_id, user_id),
            )
        return cur.rowcount > 0

    def update_account_status(
        self,
        account_id: str,
        status: AccountStatus,
        *,
        last_error: str | None = None,
        last_sync_at: datetime | None = None,
    ) -> None:
        """Write status and error; ``last_sync_at`` is only set when given."""
        LOGGER.debug("Setting account %s status to %s", account_id, status.value)
        with self._connection:
            self._connection.execute(
                """
                UPDATE email_accounts
                SET status = ?,
                    last_error = ?,
                    last_sync_at = COALESCE(?, last_sync_at)
                WHERE id = ?
                """,
                (status.value, last_error, serialize_datetime(last_sync_at), account_id),
            )

    # MessageRepository API ---------------------------------------------------
    def message_exists(self, account_id: str, remote_id: str) -> bool:
        """Return whether ``remote_id`` is already stored for the account."""
        cur = self._connection.execute(
            "SELECT 1 FROM emails WHERE account_id = ? AND remote_id = ? LIMIT 1",
            (account_id, remote_id),
        )
        return cur.fetchone() is not None

    def insert_message(self, message: Message) -> bool:
        """Insert ``message``; a duplicate remote identifier is a no-op."""
        with self._connection:
            cur = self._connection.execute(
                f"""
                INSERT INTO emails ({_MESSAGE_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(account_id, remote_id) DO NOTHING
                """,
                (
                    message.id,
                    message.account_id,
                    message.user_id,
                    message.remote_id,
                    message.from_address,
                    message.subject,
                    message.body_text,
                    serialize_datetime(message.received_at),
                    1 if message.is_read else 0,
                ),
            )
        inserted = cur.rowcount > 0
        if not inserted:
            LOGGER.debug(
                "Message %s already stored for account %s",
                message.remote_id,
                message.account_id,
            )
        return inserted

    def list_messages(
        self, user_id: str, *, account_id: str | None = None, limit: int = 50
    ) -> list[Message]:
        """Return the newest messages for the user, optionally per account."""
        query = [f"SELECT {_MESSAGE_COLUMNS} FROM emails WHERE user_id = ?"]
        params: list[object] = [user_id]
        if account_id is not None:
            query.append(" AND account_id = ?")
            params.append(account_id)
        query.append(" ORDER BY received_at DESC, id LIMIT ?")
        params.append(limit)
        cur = self._connection.execute("".join(query), params)
        return [_row_to_message(row) for row in cur.fetchall()]

    def set_message_read(self, message_id: str, user_id: str, is_read: bool) -> bool:
        """Update the read flag of a message owned by ``user_id``."""
        with self._connection:
            cur = self._connection.execute(
                "UPDATE emails SET is_read = ? WHERE id = ? AND user_id = ?",
                (1 if is_read else 0, message_id, user_id),
            )
        return cur.rowcount > 0

    def delete_message(self, message_id: str, user_id: str) -> bool:
        """Delete a single message owned by ``user_id``."""
        with self._connection:
            cur = self._connection.execute(
                "DELETE FROM emails WHERE id = ? AND user_id = ?",
                (message_id, user_id),
            )
        return cur.rowcount > 0

    def ping(self) -> None:
        """Run a trivial query; raises ``sqlite3.Error`` on a dead connection."""
        self._connection.execute("SELECT 1")

    def close(self) -> None:
        """Close the underlying SQLite connection."""
        self._connection.close()

    # Internal helpers --------------------------------------------------------
    def _enable_foreign_keys(self) -> None:
        with self._connection:
            self._connection.execute("PRAGMA foreign_keys = ON")

    def _apply_schema(self) -> None:
        with self._connection:
            for statement in SCHEMA_STATEMENTS + INDEX_STATEMENTS:
                self._connection.execute(statement)


def _row_to_account(row: sqlite3.Row) -> Account:
    return Account(
        id=row["id"],
        user_id=row["user_id"],
        email_address=row["email_address"],
        protocol=ProtocolKind(row["protocol"]),
        host=row["host"],
        port=row["port"],
        smtp_host=row["smtp_host"],
        smtp_port=row["smtp_port"],
        credential=row["auth_token"],
        status=AccountStatus(row["status"]),
        last_sync_at=parse_datetime(row["last_sync_at"]),
        last_error=row["last_error"],
        created_at=parse_datetime(row["created_at"]),
    )


def _row_to_message(row: sqlite3.Row) -> Message:
    return Message(
        id=row["id"],
        account_id=row["account_id"],
        user_id=row["user_id"],
        remote_id=row["remote_id"],
        from_address=row["from_address"],
        subject=row["subject"],
        body_text=row["body_text"],
        received_at=cast(datetime, parse_datetime(row["received_at"])),
        is_read=bool(row["is_read"]),
    )


__all__ = ["SqliteMailRepository"]
