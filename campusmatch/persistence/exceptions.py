"""Persistence layer exceptions.

Everything raised by the persistence layer derives from PersistenceError,
so callers that treat storage as best-effort (the match resolver) can catch
a single type.
"""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""


class DatabaseConnectionError(PersistenceError):
    """Database could not be initialized or reached."""


class RecordNotFoundError(PersistenceError):
    """A record that must exist was not found.

    Optional lookups return None instead.
    """


class DataIntegrityError(PersistenceError):
    """A constraint (primary key, foreign key, check) was violated."""
