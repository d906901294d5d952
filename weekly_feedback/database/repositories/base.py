"""Shared repository plumbing."""

from typing import Optional

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from ..connection import Database, get_database


class BaseRepository:
    """Resolves the database lazily so the singleton can be swapped in tests."""

    def __init__(self, db: Optional[Database] = None):
        self._db = db

    @property
    def db(self) -> Database:
        return self._db or get_database()

    def insert(self, model):
        """Dialect-specific INSERT supporting ON CONFLICT clauses."""
        if self.db.dialect_name == "sqlite":
            return sqlite_insert(model)
        return pg_insert(model)
