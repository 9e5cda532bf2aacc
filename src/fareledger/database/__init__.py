"""Database layer for fareledger application."""

from fareledger.database.base import Database, SequenceTransaction
from fareledger.database.factories import create_sqlite_database, create_database

__all__ = ["Database", "SequenceTransaction", "create_sqlite_database", "create_database"]
