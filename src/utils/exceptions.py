"""
Custom Exceptions Module.

This module defines the exceptions used for operational failures of the
consistency engine and its collaborators. Validation findings are never
raised: they are returned as ValidationIssue values.

Exception Hierarchy:
    ConsistencyEngineError (base)
    ├── ConfigurationError
    ├── InputError
    │   ├── UnsupportedFileTypeError
    │   └── RecordLoadError
    └── StorageError
        ├── DatabaseError
        └── MissingRecordIdError
"""


class ConsistencyEngineError(Exception):
    """
    Base exception for all consistency engine errors.

    Attributes:
        message: Human-readable error message.
        details: Optional dictionary with additional error details.
    """

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(ConsistencyEngineError):
    """Raised when the settings file cannot be used."""
    pass


# =============================================================================
# INPUT ERRORS
# =============================================================================

class InputError(ConsistencyEngineError):
    """Base exception for snapshot input errors."""
    pass


class UnsupportedFileTypeError(InputError):
    """
    Raised when a snapshot file type is not supported.

    Example:
        >>> raise UnsupportedFileTypeError(".xml", [".json", ".csv", ".db"])
    """

    def __init__(self, file_type: str, supported_types: list):
        message = f"Unsupported file type: '{file_type}'"
        details = {"file_type": file_type, "supported_types": supported_types}
        super().__init__(message, details)


class RecordLoadError(InputError):
    """Raised when a snapshot file cannot be read or decoded."""

    def __init__(self, filepath: str, reason: str = None):
        message = f"Could not load invoice records from: {filepath}"
        details = {"filepath": filepath, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# STORAGE ERRORS
# =============================================================================

class StorageError(ConsistencyEngineError):
    """Base exception for store-of-record errors."""
    pass


class DatabaseError(StorageError):
    """Raised when database operations fail."""

    def __init__(self, operation: str, reason: str = None):
        message = f"Database operation failed: {operation}"
        details = {"operation": operation, "reason": reason}
        super().__init__(message, details)


class MissingRecordIdError(StorageError):
    """Raised when a storage operation needs a record id that is absent."""

    def __init__(self, invoice_id: str = None):
        message = "Invoice record has no storage id"
        details = {"invoice_id": invoice_id}
        super().__init__(message, details)


__all__ = [
    'ConsistencyEngineError',
    'ConfigurationError',
    'InputError',
    'UnsupportedFileTypeError',
    'RecordLoadError',
    'StorageError',
    'DatabaseError',
    'MissingRecordIdError',
]
