"""
Database Connection Pool

Hands each concurrent request its own SQLite repository connection.
Sync calls for the same account may run in parallel worker threads; they
must not share a connection, and duplicate inserts are resolved by the
UNIQUE (account_id, remote_id) constraint rather than by a lock here.

Features:
- Connection reuse (reduces connection overhead)
- Configurable pool size (``storage.pool_size``)
- Health check on checkout, replacing dead connections
- Graceful shutdown with connection cleanup
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from queue import Empty, Queue
from threading import Lock
from types import TracebackType

from ..core.config import StorageSettings
from .sqlite import SqliteMailRepository

LOGGER = logging.getLogger(__name__)


class ConnectionPool:
    """Thread-safe connection pool for :class:`SqliteMailRepository`."""

    def __init__(self, settings: StorageSettings, pool_size: int | None = None):
        """
        Initialize connection pool.

        Args:
            settings: Storage settings containing database path
            pool_size: Override for ``settings.pool_size``
        """
        self.settings = settings
        self.pool_size = pool_size or settings.pool_size
        self._pool: Queue[SqliteMailRepository] = Queue(maxsize=self.pool_size)
        self._lock = Lock()
        self._created_count = 0
        # Slots whose dead connection could not be replaced; refilled on checkout.
        self._vacancies = 0
        self._closed = False

        for _ in range(self.pool_size):
            self._pool.put(self._create_connection())

        LOGGER.info("Initialized connection pool with %d connections", self.pool_size)

    def _create_connection(self) -> SqliteMailRepository:
        """Open a new repository connection."""
        with self._lock:
            if self._closed:
                raise RuntimeError("Connection pool is closed")
            repository = SqliteMailRepository(self.settings)
            self._created_count += 1
            LOGGER.debug("Created connection #%d", self._created_count)
            return repository

    @staticmethod
    def _validate_connection(repository: SqliteMailRepository) -> bool:
        """Return ``True`` when the connection still answers queries."""
        try:
            repository.ping()
            return True
        except sqlite3.Error:
            LOGGER.warning("Connection validation failed, will create new connection")
            return False

    @contextmanager
    def acquire(self, timeout: float = 10.0) -> Iterator[SqliteMailRepository]:
        """
        Check a repository out of the pool for the duration of a request.

        Args:
            timeout: Maximum seconds to wait for a connection (default: 10)

        Yields:
            SqliteMailRepository instance

        Raises:
            RuntimeError: If pool is closed
            TimeoutError: If no connection available within timeout
        """
        if self._closed:
            raise RuntimeError("Connection pool is closed")

        repository = self._checkout(timeout)
        if not self._validate_connection(repository):
            repository.close()
            repository = self._replace_connection()

        try:
            yield repository
        finally:
            if self._closed:
                repository.close()
            else:
                self._pool.put(repository)

    def _checkout(self, timeout: float) -> SqliteMailRepository:
        """Take an idle connection, or open one for a vacant slot."""
        with self._lock:
            fill_vacancy = self._vacancies > 0 and self._pool.empty()
            if fill_vacancy:
                self._vacancies -= 1
        if fill_vacancy:
            return self._replace_connection()

        try:
            return self._pool.get(timeout=timeout)
        except Empty as exc:
            raise TimeoutError(
                f"Could not acquire connection within {timeout} seconds"
            ) from exc

    def _replace_connection(self) -> SqliteMailRepository:
        """Open a connection for a free slot; the slot stays vacant on failure."""
        try:
            return self._create_connection()
        except Exception:
            with self._lock:
                self._vacancies += 1
            LOGGER.error("Could not open a replacement connection")
            raise

    def close(self) -> None:
        """Close all connections in the pool."""
        with self._lock:
            if self._closed:
                return
            self._closed = True

            closed_count = 0
            while True:
                try:
                    repository = self._pool.get_nowait()
                except Empty:
                    break
                repository.close()
                closed_count += 1

            LOGGER.info("Closed connection pool (%d connections closed)", closed_count)

    def __enter__(self) -> ConnectionPool:
        """Enter context manager scope."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager scope and close pool."""
        self.close()

    @property
    def size(self) -> int:
        """Number of idle connections currently in the pool."""
        return self._pool.qsize()

    @property
    def is_closed(self) -> bool:
        """Check if pool is closed."""
        return self._closed


__all__ = ["ConnectionPool"]
