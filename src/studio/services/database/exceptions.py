"""Custom exceptions for the persistence layer."""

from src.studio.exceptions import PersistenceError


class VersionConflictError(PersistenceError):
    """Raised when a project version number is already taken."""

    pass
