"""Domain error taxonomy.

The HTTP layer maps these to status codes in ``discovery.middleware.error_handler``.
"""

from __future__ import annotations


class DiscoveryError(Exception):
    """Base class for all engine errors."""

    retryable: bool = False


class ValidationError(DiscoveryError):
    """Rejected input (self-follow, missing id). Raised before any write."""


class NotFoundError(DiscoveryError):
    """The referenced edge, achievement or row does not exist."""


class TransientStoreError(DiscoveryError):
    """A store read/write timed out or lost its connection. Safe to retry."""

    retryable = True

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        self.cause = cause
        detail = f"{operation} failed"
        if cause is not None:
            detail = f"{detail}: {type(cause).__name__}"
        super().__init__(detail)
