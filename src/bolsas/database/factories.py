"""Builders for the configured Database backend."""

import os
from pathlib import Path
from typing import Optional

from bolsas.database.sqlalchemy_db import SQLAlchemyDatabase

DB_PATH_ENV = "BOLSAS_DB_PATH"
DEFAULT_DB_FILENAME = "bolsas.db"


def default_database_path() -> Path:
    """~/.bolsas/bolsas.db"""
    return Path.home() / ".bolsas" / DEFAULT_DB_FILENAME


def resolve_database_path(database_path: Optional[str] = None) -> Path:
    """Pick the SQLite file to use.

    An explicit path wins, then $BOLSAS_DB_PATH, then the default under the
    home directory. Missing parent directories are created.
    """
    candidate = database_path or os.environ.get(DB_PATH_ENV)
    path = Path(candidate).expanduser() if candidate else default_database_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLAlchemyDatabase backed by a SQLite file.

    Args:
        database_path: Path to the database file, see resolve_database_path

    Returns:
        SQLAlchemyDatabase bound to sqlite:///<path>
    """
    return SQLAlchemyDatabase(f"sqlite:///{resolve_database_path(database_path)}")
