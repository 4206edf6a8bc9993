"""Base transport for report delivery.

This module defines the abstract base class for transport implementations
(HTTP, local file, etc.) and the mapping from backend status codes to
delivery results.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, TYPE_CHECKING

from ..models import DeliveryResult, FailureCause

if TYPE_CHECKING:
    from ..models import Report

logger = logging.getLogger(__name__)


class BaseTransport(ABC):
    """Abstract base class for transport implementations.

    A transport performs exactly one delivery attempt. Retries, backoff
    and deadlines belong to the Sender.

    Subclasses must implement:
        - deliver(): Make one delivery attempt
        - validate_config(): Validate the transport configuration

    Subclasses may return a failed DeliveryResult or raise
    TransientTransportError / PermanentTransportError; any other exception
    is treated by the Sender as a transient network failure.
    """

    def __init__(self, **kwargs: Any) -> None:
        """Initialize the transport.

        Args:
            **kwargs: Transport-specific configuration options.
        """
        self._config = kwargs

    @property
    def config(self) -> Dict[str, Any]:
        """Get the transport configuration.

        Returns:
            Dictionary with configuration options.
        """
        return self._config

    @abstractmethod
    def deliver(self, report: "Report", timeout: Optional[float] = None) -> DeliveryResult:
        """Make one delivery attempt.

        Args:
            report: The report to deliver.
            timeout: Timeout for this attempt in seconds.

        Returns:
            The outcome of the attempt.
        """
        pass

    @abstractmethod
    def validate_config(self) -> bool:
        """Validate the transport configuration.

        Returns:
            True if configuration is valid, False otherwise.
        """
        pass

    def close(self) -> None:
        """Release resources held by the transport."""
        pass


def classify_status(
    status_code: int, retry_after: Optional[str] = None
) -> DeliveryResult:
    """Map an HTTP status code to a delivery result.

    2xx is success; 401/403 are authentication failures; 429 is a rate
    limit; 5xx is a server error; any other status is treated as a
    rejected (malformed) payload.

    Args:
        status_code: HTTP status code returned by the backend.
        retry_after: Raw Retry-After header value, if any.

    Returns:
        The classified DeliveryResult.
    """
    if 200 <= status_code < 300:
        return DeliveryResult.delivered(status_code=status_code)

    if status_code in (401, 403):
        cause = FailureCause.AUTH
    elif status_code == 429:
        cause = FailureCause.RATE_LIMIT
    elif 500 <= status_code < 600:
        cause = FailureCause.SERVER_ERROR
    else:
        cause = FailureCause.MALFORMED_PAYLOAD

    return DeliveryResult.failed(
        cause,
        error=f"Backend responded with HTTP {status_code}",
        status_code=status_code,
        retry_after=_parse_retry_after(retry_after) if cause is FailureCause.RATE_LIMIT else None,
    )


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        # HTTP-date form is not honoured; regular backoff applies
        logger.debug(f"Ignoring non-numeric Retry-After value: {value}")
        return None
