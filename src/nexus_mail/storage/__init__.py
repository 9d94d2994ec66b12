"""Persistence adapters."""

from .connection_pool import ConnectionPool
from .sqlite import SqliteMailRepository

__all__ = ["ConnectionPool", "SqliteMailRepository"]
