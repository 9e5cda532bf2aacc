"""Database factory functions for creating database instances."""

from typing import Optional

from fareledger.config import Settings
from fareledger.database.sqlalchemy_db import SQLAlchemyDatabase


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks FARELEDGER_DB_PATH
            environment variable, then defaults to ~/.fareledger/fareledger.db

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    settings = Settings.from_env()
    if database_path is None:
        database_path = settings.database_path

    # An explicit path always means SQLite, even if a URL is configured
    url = Settings(
        database_url=None,
        database_path=database_path,
        exports_root=settings.exports_root,
    ).resolve_database_url()
    return SQLAlchemyDatabase(url)


def create_database(database_url: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a database instance from a SQLAlchemy URL.

    Args:
        database_url: SQLAlchemy URL. If None, FARELEDGER_DATABASE_URL is used, then
            the SQLite defaults of create_sqlite_database.

    Returns:
        SQLAlchemyDatabase instance
    """
    if database_url is None:
        database_url = Settings.from_env().resolve_database_url()
    return SQLAlchemyDatabase(database_url)
