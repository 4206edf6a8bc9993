"""Ordered filter chain.

This module provides the FilterChain class that runs registered filters
over a report in ascending priority order.
"""

import itertools
import logging
import threading
from typing import Callable, NamedTuple, Optional, Tuple, Union

from ..exceptions import ConfigurationError, FilterError
from ..models import Discarded, Report
from .base import BaseFilter

logger = logging.getLogger(__name__)

FilterCallable = Callable[[Report], Optional[Report]]


class _RegisteredFilter(NamedTuple):
    priority: int
    sequence: int
    name: str
    func: FilterCallable


class FilterChain:
    """Ordered set of report filters.

    Filters run in ascending priority; filters with equal priority run in
    registration order. Each filter sees the output of the previous one.
    A filter returning None discards the report and stops the chain.

    Errors raised inside a filter are logged and that filter is skipped,
    so one broken filter never blocks reporting.

    The chain is append-only. Registration replaces an immutable snapshot
    under a lock, so ``run`` never observes a half-updated list.

    Example:
        chain = FilterChain()
        chain.add_filter(KeysFilter(patterns=["password"]), priority=10)
        chain.add_filter(lambda r: None if r.fault_type == "KeyboardInterrupt" else r)

        result = chain.run(report)
        if isinstance(result, Discarded):
            ...
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sequence = itertools.count()
        self._filters: Tuple[_RegisteredFilter, ...] = ()

    def add_filter(
        self,
        filter: FilterCallable,
        priority: int = 0,
        name: Optional[str] = None,
    ) -> None:
        """Register a filter.

        Args:
            filter: A BaseFilter or any callable taking and returning a report.
            priority: Lower values run first.
            name: Display name for logs; derived from the filter if omitted.

        Raises:
            ConfigurationError: If the filter is not callable.
        """
        if not callable(filter):
            raise ConfigurationError(f"Filter must be callable, got {filter!r}")

        entry = _RegisteredFilter(
            priority=priority,
            sequence=next(self._sequence),
            name=name or _filter_name(filter),
            func=filter,
        )
        with self._lock:
            self._filters = tuple(
                sorted(self._filters + (entry,), key=lambda f: (f.priority, f.sequence))
            )
        logger.debug(f"Registered filter {entry.name} (priority={priority})")

    def run(self, report: Report) -> Union[Report, Discarded]:
        """Run all filters over a report.

        Args:
            report: The normalized report.

        Returns:
            The final report, or Discarded if a filter dropped it.
        """
        current = report
        for entry in self._filters:
            try:
                result = entry.func(current)
            except Exception as e:
                error = FilterError(
                    f"Filter {entry.name} failed", filter_name=entry.name, cause=e
                )
                logger.error(f"{error}; skipping it", exc_info=True)
                continue

            if result is None:
                logger.debug(f"Report {current.id} discarded by filter {entry.name}")
                return Discarded(report=current, filter_name=entry.name)

            if not isinstance(result, Report):
                error = FilterError(
                    f"Filter {entry.name} returned {type(result).__name__}, "
                    f"expected Report or None",
                    filter_name=entry.name,
                )
                logger.error(f"{error}; skipping it")
                continue

            current = result
        return current

    @property
    def names(self) -> Tuple[str, ...]:
        """Names of the registered filters in execution order."""
        return tuple(entry.name for entry in self._filters)

    def __len__(self) -> int:
        return len(self._filters)


def performance_only(filter: FilterCallable) -> FilterCallable:
    """Wrap a filter so it only runs on reports with a performance attachment.

    Args:
        filter: The filter to wrap.

    Returns:
        A callable passing reports without an attachment through unchanged.
    """

    def wrapper(report: Report) -> Optional[Report]:
        if report.performance is None:
            return report
        return filter(report)

    wrapper.__name__ = _filter_name(filter)
    return wrapper


def _filter_name(filter: FilterCallable) -> str:
    if isinstance(filter, BaseFilter):
        return filter.get_name()
    return getattr(filter, "__name__", None) or type(filter).__name__
