"""
Shared infrastructure for services.

This package contains shared building blocks used across multiple services,
such as the database abstraction, the error taxonomy and money helpers.
"""

from .database import Database, PostgreSQLDatabase, close_all_pools
from .errors import (
    ConflictError,
    CredentialError,
    CredentialExpiredAndRefreshFailedError,
    CredentialMissingError,
    ExternalProviderError,
    InvalidAttendeeEmailError,
    InvalidStateError,
    KaryaError,
    NotFoundError,
    PermissionDeniedError,
    ProviderTimeoutError,
    ValidationError,
)
from .structured_logging import get_structured_logger

__all__ = [
    "Database",
    "PostgreSQLDatabase",
    "close_all_pools",
    "get_structured_logger",
    "KaryaError",
    "NotFoundError",
    "PermissionDeniedError",
    "InvalidStateError",
    "ConflictError",
    "ValidationError",
    "InvalidAttendeeEmailError",
    "ExternalProviderError",
    "ProviderTimeoutError",
    "CredentialError",
    "CredentialMissingError",
    "CredentialExpiredAndRefreshFailedError",
]
