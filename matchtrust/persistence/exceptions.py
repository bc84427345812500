"""Persistence layer exceptions.

Repositories wrap SQLAlchemy errors in these types, so callers only need
to catch PersistenceError.
"""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""


class DatabaseConnectionError(PersistenceError):
    """The database could not be initialized or reached."""


class RecordNotFoundError(PersistenceError):
    """An update targeted a row that does not exist.

    Plain lookups return None instead of raising this.
    """


class DataIntegrityError(PersistenceError):
    """A constraint was violated (e.g. a second review for one engagement)."""
