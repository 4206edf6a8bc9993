"""Base middleware for request error reporting.

This module defines the abstract base class for framework-specific
middleware implementations.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..delivery import DrainResult
    from ..notifier import Notifier

logger = logging.getLogger(__name__)

# Maximum size for context values taken from requests
MAX_CONTEXT_VALUE_SIZE = 2000

REQUEST_TAG = "request"


class BaseMiddleware(ABC):
    """Abstract base class for framework middleware.

    Provides the reporting path shared by all frameworks: context
    truncation and a ``report_exception`` that never raises. Framework
    implementations only need to install their hooks and extract request
    context.

    Attributes:
        notifier: The notifier receiving captured exceptions.
    """

    def __init__(self, notifier: "Notifier") -> None:
        self.notifier = notifier

    @abstractmethod
    def install(self, app: Any) -> None:
        """Install the middleware into the application.

        Args:
            app: The framework application instance.
        """
        pass

    def report_exception(
        self, exc: BaseException, context: Optional[Mapping[str, Any]] = None
    ) -> None:
        """Queue an unhandled request exception for delivery.

        Args:
            exc: The exception raised while handling the request.
            context: Request context attributes.
        """
        try:
            self.notifier.notify(exc, context=context, tag=REQUEST_TAG)
            logger.debug(f"Reported {type(exc).__name__} from request")
        except Exception as e:
            # Never let reporting errors affect the application
            logger.error(f"Error reporting request exception: {e}", exc_info=True)

    def _truncate_value(self, value: Any, max_size: int = MAX_CONTEXT_VALUE_SIZE) -> str:
        """Truncate a value's string form if it exceeds max size.

        Args:
            value: The value to truncate.
            max_size: Maximum allowed size.

        Returns:
            Truncated string with indicator if truncated.
        """
        text = str(value)
        if len(text) <= max_size:
            return text
        return text[:max_size] + "... [truncated]"

    def _clean_context(self, context: Dict[str, Any]) -> Dict[str, str]:
        """Drop empty values and truncate the rest."""
        return {
            key: self._truncate_value(value)
            for key, value in context.items()
            if value is not None and value != ""
        }

    def shutdown(self, timeout: Optional[float] = None) -> "DrainResult":
        """Shutdown the notifier behind this middleware.

        Args:
            timeout: Optional timeout in seconds. Uses config value if None.

        Returns:
            The notifier's DrainResult.
        """
        return self.notifier.shutdown(timeout)
