"""Persistence for bolsas: the Database contract and its SQLAlchemy backend."""

from bolsas.database.base import Database
from bolsas.database.factories import create_sqlite_database, resolve_database_path
from bolsas.database.sqlalchemy_db import SQLAlchemyDatabase

__all__ = ["Database", "SQLAlchemyDatabase", "create_sqlite_database", "resolve_database_path"]
