"""Base filter for report processing.

This module defines the abstract base class for filter implementations
(key redaction, SQL redaction, ignore lists, etc.).
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..models import Report

logger = logging.getLogger(__name__)


class BaseFilter(ABC):
    """Abstract base class for filter implementations.

    A filter receives a report and returns either a report (the same one,
    or a modified copy built with ``report.replace``) or None to discard it.

    Plain callables with the same signature can be registered in a
    FilterChain too; subclassing is only needed for config-driven filters.

    Example:
        @register_filter("drop_health_checks")
        class HealthCheckFilter(BaseFilter):
            def apply(self, report):
                if report.context.get("path") == "/health":
                    return None
                return report
    """

    #: Display name used in logs; defaults to the class name.
    name: str = ""

    def __init__(self, **kwargs: Any) -> None:
        """Initialize the filter.

        Args:
            **kwargs: Filter-specific configuration options.
        """
        self._config = kwargs

    @property
    def config(self) -> Dict[str, Any]:
        """Get the filter configuration.

        Returns:
            Dictionary with configuration options.
        """
        return self._config

    def get_name(self) -> str:
        return self.name or self.__class__.__name__

    @abstractmethod
    def apply(self, report: "Report") -> "Optional[Report]":
        """Process a report.

        Args:
            report: The report produced by the previous filter.

        Returns:
            The report to pass on, or None to discard it.
        """
        pass

    def __call__(self, report: "Report") -> "Optional[Report]":
        return self.apply(report)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._config!r})"
