"""Database engine utilities.

This module centralizes SQLAlchemy engine construction so every SQL access
path shares one connection pool configuration.
"""

from sqlalchemy import Engine, create_engine

from hedge_ledger.config import MEMORY_DATABASE_URL_PREFIX


def db_create_engine(database_url: str, echo_sql: bool = False) -> Engine:
    """Create the SQLAlchemy engine for ledger store access.

    Args:
        database_url: SQLAlchemy database URL.
        echo_sql: Whether SQLAlchemy logs emitted statements.

    Returns:
        Engine: Configured SQLAlchemy engine.

    Raises:
        ValueError: Raised when the database URL is blank or selects the in-memory store.
    """

    normalized_url = database_url.strip()
    if not normalized_url:
        raise ValueError("database_url must not be blank")
    if normalized_url.startswith(MEMORY_DATABASE_URL_PREFIX):
        raise ValueError("memory:// database_url has no SQL engine")

    return create_engine(normalized_url, pool_pre_ping=True, echo=echo_sql)
