"""Report filters.

This module provides the filter registry, the filter chain and the
built-in filters.

Public API:
    - BaseFilter: Abstract base class for filters
    - FilterChain: Ordered, append-only filter runner
    - register_filter: Decorator to register filters for config-driven setup
    - get_filter: Factory function to get a filter by type
    - list_filters: List all registered filter types
    - build_filters: Build (filter, priority) pairs from a filter_list config
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from ..exceptions import ConfigurationError
from .base import BaseFilter
from .chain import FilterChain, performance_only

logger = logging.getLogger(__name__)

# Registry of filter classes
_filter_registry: Dict[str, Type[BaseFilter]] = {}


def register_filter(
    name: str,
) -> Callable[[Type[BaseFilter]], Type[BaseFilter]]:
    """Decorator to register a filter class.

    Registers a filter class with the given name, allowing it to be
    built from a ``filter_list`` configuration entry.

    Args:
        name: The filter type name (e.g., "keys", "sql").

    Returns:
        Decorator function that registers the filter class.
    """

    def decorator(cls: Type[BaseFilter]) -> Type[BaseFilter]:
        if name in _filter_registry:
            logger.warning(
                f"Filter '{name}' is already registered. "
                f"Overwriting with {cls.__name__}"
            )
        _filter_registry[name] = cls
        logger.debug(f"Registered filter: {name} -> {cls.__name__}")
        return cls

    return decorator


def get_filter(filter_type: str, **kwargs: Any) -> BaseFilter:
    """Create a filter instance by type.

    Args:
        filter_type: The filter type name.
        **kwargs: Options passed to the filter constructor.

    Returns:
        A configured filter instance.

    Raises:
        KeyError: If the filter type is not registered.
    """
    if filter_type not in _filter_registry:
        raise KeyError(
            f"Filter type '{filter_type}' is not registered. "
            f"Available types: {list_filters()}"
        )
    return _filter_registry[filter_type](**kwargs)


def list_filters() -> List[str]:
    """List all registered filter types.

    Returns:
        List of registered filter type names.
    """
    return list(_filter_registry.keys())


def get_filter_class(name: str) -> Optional[Type[BaseFilter]]:
    """Get a filter class by name without instantiating.

    Args:
        name: The filter type name.

    Returns:
        The filter class, or None if not registered.
    """
    return _filter_registry.get(name)


def build_filters(filter_list: List[Dict[str, Any]]) -> List[Tuple[BaseFilter, int]]:
    """Build filters from configuration entries.

    Each entry names a registered ``type``, an optional ``priority``
    (default 0) and constructor options.

    Args:
        filter_list: Filter configuration dicts.

    Returns:
        List of (filter, priority) pairs in configuration order.

    Raises:
        ConfigurationError: If an entry names an unknown type or has
            invalid options.
    """
    built: List[Tuple[BaseFilter, int]] = []
    for entry in filter_list:
        options = {k: v for k, v in entry.items() if k not in ("type", "priority")}
        filter_type = entry.get("type", "")
        try:
            built.append((get_filter(filter_type, **options), int(entry.get("priority", 0))))
        except KeyError as e:
            raise ConfigurationError(f"Unknown filter type: {filter_type}", cause=e) from e
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Invalid options for filter {filter_type}: {options}", cause=e
            ) from e
    return built


__all__ = [
    "BaseFilter",
    "FilterChain",
    "performance_only",
    "register_filter",
    "get_filter",
    "list_filters",
    "get_filter_class",
    "build_filters",
    "ContextFilter",
    "IgnoreFilter",
    "KeysFilter",
    "SqlFilter",
    "register_sql_dialect",
]

# Import filters to trigger registration
from .builtin import ContextFilter, IgnoreFilter, KeysFilter  # noqa: E402
from .sql import SqlFilter, register_sql_dialect  # noqa: E402
