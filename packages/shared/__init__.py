"""Shared utilities package."""

from packages.shared.exceptions import (
    AppException,
    AuthenticationError,
    DatabaseException,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)

__all__ = [
    "AppException",
    "AuthenticationError",
    "DatabaseException",
    "ForbiddenError",
    "NotFoundError",
    "ValidationError",
]
