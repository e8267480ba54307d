"""Error taxonomy shared across the service."""


class StudioError(Exception):
    """Base exception for all service errors."""

    pass


class ConfigurationError(StudioError):
    """Raised at start-up when required configuration is missing or invalid."""

    pass


class UnauthorizedError(StudioError):
    """Raised when no verifiable identity is attached to the request."""

    pass


class ForbiddenError(StudioError):
    """Raised when the caller is authenticated but does not own the resource."""

    pass


class BadRequestError(StudioError):
    """Raised for malformed or missing client input."""

    pass


class NotFoundError(StudioError):
    """Raised when a referenced resource does not exist."""

    pass


class UpstreamError(StudioError):
    """Raised when an identity or generation provider call fails."""

    pass


class PersistenceError(StudioError):
    """Raised when a storage read or write fails."""

    pass
