"""ICS-specific exceptions for error handling."""

from typing import Optional


class ICSError(Exception):
    """Base exception for ICS-related errors."""

    def __init__(self, message: str, event_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.event_id = event_id


class ICSParseError(ICSError):
    """Exception raised when ICS content cannot be parsed at all."""


class ICSGenerationError(ICSError):
    """Exception raised when an event cannot be rendered as ICS.

    The generator expects already-validated input, so this signals a bug in
    the caller rather than bad user data.
    """


class ICSImportError(ICSError):
    """Exception raised when an import produced no usable events."""

    def __init__(self, message: str, warnings: Optional[list[str]] = None):
        super().__init__(message)
        self.warnings = list(warnings or [])


class ICSFileTooLargeError(ICSError):
    """Exception raised when ICS content exceeds the configured size limit."""

    def __init__(self, message: str, size_bytes: int, limit_bytes: int):
        super().__init__(message)
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes


class ICSConfigError(ICSError):
    """Exception raised when configuration cannot be loaded or is invalid."""
