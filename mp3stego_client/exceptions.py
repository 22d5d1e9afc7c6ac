"""
Defines custom exceptions for the application to allow for more specific error handling.
"""

from typing import Optional


class StegoClientError(Exception):
    """Base exception for all application-specific errors."""


class ValidationFailure(StegoClientError):
    """
    Raised when a request draft violates an input rule.

    Always recoverable locally; a draft that fails validation never reaches
    the network.
    """

    def __init__(self, violation):
        self.violation = violation
        super().__init__(violation.message)


class TransportFailure(StegoClientError):
    """
    Raised when a call to the steganography service could not complete.

    The message is the one supplied by the service when it sent one, otherwise
    a generic per-operation message.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class DecodingFailure(StegoClientError):
    """Raised when a successful response body could not be interpreted."""


class ConfigurationError(StegoClientError):
    """Raised for issues related to configuration loading or validation."""


class NoResultError(StegoClientError):
    """Raised when a save is requested but no result is currently held."""
