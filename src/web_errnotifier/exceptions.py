"""Web Error Notifier exceptions.

This module defines all custom exceptions used throughout the web-errnotifier package.
"""

from typing import Optional


class WebErrNotifierError(Exception):
    """Base exception for all web-errnotifier errors.

    All custom exceptions in this package inherit from this class,
    allowing users to catch all package-specific errors with a single except clause.
    """

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            cause: Optional underlying exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message} (caused by: {self.cause})"
        return self.message


class ConfigurationError(WebErrNotifierError):
    """Raised when there is a configuration error.

    This includes invalid configuration values, missing required fields,
    or configuration validation failures.
    """

    pass


class MalformedInputError(WebErrNotifierError):
    """Raised when a fault cannot be turned into a report.

    Raised when no type/message pair can be extracted from the captured
    fault object, or when its performance data is unusable.
    """

    pass


class FilterError(WebErrNotifierError):
    """Raised when a filter fails while processing a report.

    The filter chain catches it, logs it and skips the offending filter.
    """

    def __init__(
        self,
        message: str,
        filter_name: str = "",
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, cause)
        self.filter_name = filter_name


class QueueFullError(WebErrNotifierError):
    """Raised when the delivery queue cannot accept a report.

    Happens with the "reject_new" overflow policy or after the queue
    has been closed for shutdown.
    """

    pass


class TransportError(WebErrNotifierError):
    """Base class for delivery failures raised by transports."""

    transient = False

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            status_code: HTTP status returned by the backend, if any.
            cause: Optional underlying exception that caused this error.
        """
        super().__init__(message, cause)
        self.status_code = status_code


class TransientTransportError(TransportError):
    """Retryable delivery failure (network, rate limit, server error)."""

    transient = True


class PermanentTransportError(TransportError):
    """Non-retryable delivery failure (authentication, malformed payload)."""

    transient = False
