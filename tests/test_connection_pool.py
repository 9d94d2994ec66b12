"""Tests for the repository connection pool."""

from __future__ import annotations

import sqlite3

import pytest

from nexus_mail.core.config import AppSettings
from nexus_mail.storage import ConnectionPool


def test_acquire_returns_connection_to_pool(settings: AppSettings) -> None:
    with ConnectionPool(settings.storage) as pool:
        assert pool.size == 2
        with pool.acquire() as repository:
            repository.ping()
            assert pool.size == 1
        assert pool.size == 2
    assert pool.is_closed


def test_dead_connection_is_replaced(settings: AppSettings) -> None:
    with ConnectionPool(settings.storage, pool_size=1) as pool:
        with pool.acquire() as first:
            first.close()
        with pool.acquire() as second:
            assert second is not first
            second.ping()


def test_exhausted_pool_times_out(settings: AppSettings) -> None:
    with ConnectionPool(settings.storage, pool_size=1) as pool:
        with pool.acquire():
            with pytest.raises(TimeoutError):
                with pool.acquire(timeout=0.01):
                    pass


def test_closed_pool_refuses_checkout(settings: AppSettings) -> None:
    pool = ConnectionPool(settings.storage, pool_size=1)
    pool.close()

    with pytest.raises(RuntimeError):
        with pool.acquire():
            pass


def test_failed_replacement_does_not_requeue_dead_connection(
    settings: AppSettings, monkeypatch: pytest.MonkeyPatch
) -> None:
    with ConnectionPool(settings.storage, pool_size=1) as pool:
        with pool.acquire() as first:
            first.close()

        def refuse() -> None:
            raise sqlite3.OperationalError("unable to open database file")

        monkeypatch.setattr(pool, "_create_connection", refuse)
        with pytest.raises(sqlite3.OperationalError):
            with pool.acquire(timeout=0.01):
                pass
        assert pool.size == 0

        monkeypatch.undo()
        with pool.acquire(timeout=0.01) as replacement:
            assert replacement is not first
            replacement.ping()
        assert pool.size == 1
