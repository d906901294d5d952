"""Storage-level exceptions raised by the repositories."""


class DatabaseError(Exception):
    """Base exception for database errors."""
    pass


class DatabaseNotConfiguredError(DatabaseError):
    """DATABASE_URL missing or the engine could not be created."""
    pass


class DatabaseConstraintError(DatabaseError):
    """Unique key or foreign key violation on an explicit insert."""

    def __init__(self, message: str, constraint: str = ""):
        super().__init__(message)
        self.constraint = constraint


class EntityNotFoundError(DatabaseError):
    """An update targeted a row that does not exist."""
    pass
