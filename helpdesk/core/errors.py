"""Error hierarchy shared by the service layer.

Every error raised by a service carries an :class:`ErrorKind`. The kind is fixed by
the class at the point the problem is detected; the HTTP layer maps kinds to status
codes and never looks at message text.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Categories of failure surfaced to callers."""

    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal"


class ServiceError(RuntimeError):
    """Base error for service layer issues."""

    kind: ErrorKind = ErrorKind.INTERNAL


class InvalidInputError(ServiceError):
    """Raised when caller supplied data is missing or malformed."""

    kind = ErrorKind.INVALID_INPUT


class NotFoundError(ServiceError):
    """Raised when the targeted record does not exist."""

    kind = ErrorKind.NOT_FOUND


class ConflictError(ServiceError):
    """Raised when a write would violate a uniqueness rule."""

    kind = ErrorKind.CONFLICT


class InternalError(ServiceError):
    """Raised when the datastore or another dependency fails unexpectedly."""

    kind = ErrorKind.INTERNAL


def require(value: object, message: str) -> None:
    """Raise :class:`InvalidInputError` when ``value`` is empty."""

    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidInputError(message)
