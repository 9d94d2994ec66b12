"""Tests for the SQLite-backed account and message repository."""

from __future__ import annotations

import sqlite3
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import pytest

from nexus_mail.core.models import Account, AccountStatus, Message, ProtocolKind
from nexus_mail.storage import SqliteMailRepository

from helpers import USER_ID


def _message(remote_id: str, *, account_id: str = "acct-1", minutes: int = 0) -> Message:
    return Message(
        id=f"msg-{account_id}-{remote_id}",
        account_id=account_id,
        user_id=USER_ID,
        remote_id=remote_id,
        from_address="sender@example.com",
        subject=f"Subject {remote_id}",
        body_text="Hello",
        received_at=datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=minutes),
    )


def test_account_round_trip_is_scoped_to_user(
    repository: SqliteMailRepository, make_account: Callable[..., Account]
) -> None:
    make_account("acct-1")
    make_account("acct-2", protocol=ProtocolKind.TRANSACTIONAL_HTTP, credential="SG.key")

    stored = repository.get_account("acct-1", USER_ID)
    assert stored is not None
    assert stored.host == "imap.example.com"
    assert stored.smtp_host == "smtp.example.com"
    assert stored.credential == "app-password"
    assert stored.status is AccountStatus.CONNECTED
    assert repository.get_account("acct-1", "someone-else") is None
    assert [a.id for a in repository.list_accounts(USER_ID)] == ["acct-1", "acct-2"]
    assert repository.list_accounts("someone-else") == []


def test_duplicate_remote_id_is_ignored(
    repository: SqliteMailRepository, make_account: Callable[..., Account]
) -> None:
    make_account()

    assert repository.insert_message(_message("101")) is True
    duplicate = _message("101")
    duplicate.id = "another-local-id"
    assert repository.insert_message(duplicate) is False
    assert repository.message_exists("acct-1", "101")
    assert not repository.message_exists("acct-1", "102")
    assert len(repository.list_messages(USER_ID)) == 1


def test_same_remote_id_allowed_across_accounts(
    repository: SqliteMailRepository, make_account: Callable[..., Account]
) -> None:
    make_account("acct-1")
    make_account("acct-2", email_address="other@example.com")

    assert repository.insert_message(_message("101", account_id="acct-1"))
    assert repository.insert_message(_message("101", account_id="acct-2"))


def test_list_messages_orders_newest_first_and_filters(
    repository: SqliteMailRepository, make_account: Callable[..., Account]
) -> None:
    make_account("acct-1")
    make_account("acct-2", email_address="other@example.com")
    repository.insert_message(_message("1", minutes=1))
    repository.insert_message(_message("2", minutes=5))
    repository.insert_message(_message("3", account_id="acct-2", minutes=3))

    assert [m.remote_id for m in repository.list_messages(USER_ID)] == ["2", "3", "1"]
    assert [m.remote_id for m in repository.list_messages(USER_ID, limit=1)] == ["2"]
    filtered = repository.list_messages(USER_ID, account_id="acct-2")
    assert [m.remote_id for m in filtered] == ["3"]


def test_update_status_keeps_last_sync_unless_given(
    repository: SqliteMailRepository, make_account: Callable[..., Account]
) -> None:
    make_account()
    synced_at = datetime(2024, 2, 1, 8, 0, tzinfo=timezone.utc)

    repository.update_account_status(
        "acct-1", AccountStatus.CONNECTED, last_sync_at=synced_at
    )
    repository.update_account_status("acct-1", AccountStatus.ERROR, last_error="boom")

    stored = repository.get_account("acct-1", USER_ID)
    assert stored is not None
    assert stored.status is AccountStatus.ERROR
    assert stored.last_error == "boom"
    assert stored.last_sync_at == synced_at


def test_read_flag_and_message_delete(
    repository: SqliteMailRepository, make_account: Callable[..., Account]
) -> None:
    make_account()
    repository.insert_message(_message("101"))
    message_id = "msg-acct-1-101"

    assert repository.set_message_read(message_id, USER_ID, True)
    assert repository.list_messages(USER_ID)[0].is_read is True
    assert not repository.set_message_read(message_id, "someone-else", False)
    assert not repository.delete_message(message_id, "someone-else")
    assert repository.delete_message(message_id, USER_ID)
    assert repository.list_messages(USER_ID) == []


def test_deleting_account_cascades_to_messages(
    repository: SqliteMailRepository, make_account: Callable[..., Account]
) -> None:
    make_account()
    repository.insert_message(_message("101"))
    repository.insert_message(_message("102"))

    assert repository.delete_account("acct-1", USER_ID)
    assert not repository.delete_account("acct-1", USER_ID)
    assert repository.list_messages(USER_ID) == []


def test_message_for_unknown_account_is_rejected(repository: SqliteMailRepository) -> None:
    with pytest.raises(sqlite3.IntegrityError):
        repository.insert_message(_message("101", account_id="missing"))
