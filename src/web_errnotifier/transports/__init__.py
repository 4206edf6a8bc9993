"""Delivery transports.

This module provides the transport registry and base classes for
implementing delivery backends.

Public API:
    - BaseTransport: Abstract base class for transports
    - register_transport: Decorator to register custom transports
    - get_transport: Factory function to get a transport by type
    - list_transports: List all registered transport types
    - build_transport: Build the transport named by a NotifierConfig
"""

import logging
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING, Type

from ..exceptions import ConfigurationError
from .base import BaseTransport, classify_status

if TYPE_CHECKING:
    from ..config import NotifierConfig

logger = logging.getLogger(__name__)

# Registry of transport classes
_transport_registry: Dict[str, Type[BaseTransport]] = {}


def register_transport(
    name: str,
) -> Callable[[Type[BaseTransport]], Type[BaseTransport]]:
    """Decorator to register a transport class.

    Args:
        name: The transport type name (e.g., "http", "local").

    Returns:
        Decorator function that registers the transport class.

    Example:
        @register_transport("stdout")
        class StdoutTransport(BaseTransport):
            def deliver(self, report, timeout=None):
                print(report.to_json())
                return DeliveryResult.delivered()

            def validate_config(self) -> bool:
                return True
    """

    def decorator(cls: Type[BaseTransport]) -> Type[BaseTransport]:
        if name in _transport_registry:
            logger.warning(
                f"Transport '{name}' is already registered. "
                f"Overwriting with {cls.__name__}"
            )
        _transport_registry[name] = cls
        logger.debug(f"Registered transport: {name} -> {cls.__name__}")
        return cls

    return decorator


def get_transport(transport_type: str, **kwargs: Any) -> BaseTransport:
    """Create a transport instance by type.

    Args:
        transport_type: The transport type name.
        **kwargs: Configuration options passed to the transport constructor.

    Returns:
        A configured transport instance.

    Raises:
        KeyError: If the transport type is not registered.
    """
    if transport_type not in _transport_registry:
        raise KeyError(
            f"Transport type '{transport_type}' is not registered. "
            f"Available types: {list_transports()}"
        )
    return _transport_registry[transport_type](**kwargs)


def list_transports() -> List[str]:
    """List all registered transport types.

    Returns:
        List of registered transport type names.
    """
    return list(_transport_registry.keys())


def get_transport_class(name: str) -> Optional[Type[BaseTransport]]:
    """Get a transport class by name without instantiating.

    Args:
        name: The transport type name.

    Returns:
        The transport class, or None if not registered.
    """
    return _transport_registry.get(name)


def build_transport(config: "NotifierConfig") -> BaseTransport:
    """Build the transport selected by a configuration.

    Args:
        config: The notifier configuration.

    Returns:
        A validated transport instance.

    Raises:
        ConfigurationError: If the transport is unknown or misconfigured.
    """
    try:
        transport = get_transport(
            config.transport,
            endpoint=config.endpoint,
            api_key=config.api_key,
            timeout=config.timeout_seconds,
            output_dir=config.log_path,
        )
    except KeyError as e:
        raise ConfigurationError(f"Unknown transport: {config.transport}", cause=e) from e

    if not transport.validate_config():
        raise ConfigurationError(
            f"Transport '{config.transport}' is not configured correctly "
            f"(endpoint={config.endpoint!r}, log_path={config.log_path!r})"
        )
    return transport


__all__ = [
    "BaseTransport",
    "classify_status",
    "register_transport",
    "get_transport",
    "list_transports",
    "get_transport_class",
    "build_transport",
]

# Import transports to trigger registration
from . import http  # noqa: E402,F401
from . import local  # noqa: E402,F401
