"""Database factory functions for creating database instances."""

from pathlib import Path
from typing import Optional

from finledger.config import LedgerConfig
from finledger.database.sqlalchemy_db import SQLAlchemyDatabase


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks FINLEDGER_DB_PATH
            environment variable, then defaults to ~/.finledger/finledger.db

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        database_path = LedgerConfig.from_env().database_path

    if database_path is None:
        # Default to ~/.finledger/finledger.db
        db_dir = Path.home() / ".finledger"
        db_dir.mkdir(exist_ok=True)
        database_path = str(db_dir / "finledger.db")

    return SQLAlchemyDatabase(f"sqlite:///{database_path}")


def create_database(config: LedgerConfig) -> SQLAlchemyDatabase:
    """Create a database from configuration.

    An explicit database URL wins over the SQLite path settings.
    """
    if config.database_url:
        return SQLAlchemyDatabase(config.database_url)
    return create_sqlite_database(config.database_path)
