"""Custom exceptions for depure."""


class DepureError(Exception):
    """Base exception for all depure operations."""


class ConfigurationError(DepureError):
    """Raised when configuration validation fails."""


class OracleError(DepureError):
    """Raised when the name-resolution oracle fails or returns an unusable response.

    The oracle's own error text is kept verbatim in the message so it can be
    shown to the user unchanged.
    """


class FileProcessingError(DepureError):
    """Raised when reading or writing a requirements artifact fails."""
