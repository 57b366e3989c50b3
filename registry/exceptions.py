"""
Asset Registry - Exceptions

This module defines the closed set of errors raised by registry operations.
Every error carries an ErrorKind tag so callers can switch on it at the
boundary that reports to the user.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Error kind enumeration."""
    INVALID_INPUT = "invalid_input"
    ALREADY_EXISTS = "already_exists"
    NOT_FOUND = "not_found"
    PRIVATE_DATA_FAILURE = "private_data_failure"
    OPERATION_FAILURE = "operation_failure"
    INVALID_ENCODING = "invalid_encoding"


class RegistryError(Exception):
    """Base exception for all registry errors."""

    kind: ErrorKind = ErrorKind.OPERATION_FAILURE

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class InvalidInputError(RegistryError):
    """Raised when a required argument is missing or blank."""
    kind = ErrorKind.INVALID_INPUT


class AssetExistsError(RegistryError):
    """Raised when creating an asset whose id is already known."""
    kind = ErrorKind.ALREADY_EXISTS


class AssetNotFoundError(RegistryError):
    """Raised when an asset or its confidential details do not exist."""
    kind = ErrorKind.NOT_FOUND


class PrivateDataError(RegistryError):
    """Raised when confidential details cannot be stored or read."""
    kind = ErrorKind.PRIVATE_DATA_FAILURE


class OperationError(RegistryError):
    """Raised when any other ledger interaction fails."""
    kind = ErrorKind.OPERATION_FAILURE


class InvalidEncodingError(RegistryError):
    """Raised when stored record text cannot be decoded."""
    kind = ErrorKind.INVALID_ENCODING
