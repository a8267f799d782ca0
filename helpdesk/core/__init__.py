"""Configuration, logging and error primitives."""

from .config import Settings, get_settings
from .errors import (
    ConflictError,
    ErrorKind,
    InternalError,
    InvalidInputError,
    NotFoundError,
    ServiceError,
)

__all__ = [
    "ConflictError",
    "ErrorKind",
    "InternalError",
    "InvalidInputError",
    "NotFoundError",
    "ServiceError",
    "Settings",
    "get_settings",
]
