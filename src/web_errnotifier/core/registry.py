"""Framework registry for adapter management.

This module provides the FrameworkRegistry, which maps framework names
to the adapters that install error reporting into those frameworks, and
picks the right adapter for an application object.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING, Type

from ..exceptions import ConfigurationError

if TYPE_CHECKING:
    from ..notifier import Notifier
    from .base_adapter import BaseAdapter
    from .base_middleware import BaseMiddleware

logger = logging.getLogger(__name__)


class FrameworkRegistry:
    """Class-level registry of framework adapters.

    Adapters register themselves by framework name when their framework
    package is importable. ``install`` finds the adapter for an
    application and wires the notifier into it.

    Example:
        @FrameworkRegistry.register("flask")
        class FlaskAdapter(BaseAdapter):
            ...

        middleware = FrameworkRegistry.install(app, notifier)
    """

    _adapters: Dict[str, Type["BaseAdapter"]] = {}
    _instances: Dict[str, "BaseAdapter"] = {}

    @classmethod
    def register(cls, name: str) -> Callable[[Type["BaseAdapter"]], Type["BaseAdapter"]]:
        """Decorator registering an adapter class under a framework name.

        Registering a name again replaces the adapter and its cached
        instance.

        Args:
            name: The framework name (e.g., "flask").

        Returns:
            Decorator function that registers the adapter class.
        """

        def decorator(adapter_cls: Type["BaseAdapter"]) -> Type["BaseAdapter"]:
            cls._adapters[name] = adapter_cls
            cls._instances.pop(name, None)
            logger.debug(f"Registered framework adapter: {name}")
            return adapter_cls

        return decorator

    @classmethod
    def get(cls, name: str) -> Type["BaseAdapter"]:
        """Get a registered adapter class by name.

        Raises:
            KeyError: If no adapter is registered for the given name.
        """
        if name not in cls._adapters:
            raise KeyError(
                f"No adapter registered for framework '{name}'. "
                f"Available frameworks: {cls.list_frameworks()}"
            )
        return cls._adapters[name]

    @classmethod
    def get_instance(cls, name: str) -> "BaseAdapter":
        if name not in cls._instances:
            cls._instances[name] = cls.get(name)()
        return cls._instances[name]

    @classmethod
    def list_frameworks(cls) -> List[str]:
        return list(cls._adapters)

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name in cls._adapters

    @classmethod
    def unregister(cls, name: str) -> None:
        """Remove an adapter (mainly for testing)."""
        cls._adapters.pop(name, None)
        cls._instances.pop(name, None)

    @classmethod
    def auto_detect(cls, app: Any) -> Optional["BaseAdapter"]:
        """Find the adapter able to handle an application.

        Adapters are asked in registration order. An adapter whose check
        raises is skipped.

        Args:
            app: The application instance to detect.

        Returns:
            An adapter instance if detected, None otherwise.
        """
        for name in list(cls._adapters):
            try:
                adapter = cls.get_instance(name)
                if adapter.can_handle(app):
                    logger.debug(f"Auto-detected framework: {name}")
                    return adapter
            except Exception as e:
                logger.debug(f"Adapter {name} cannot handle app: {e}")

        logger.warning(f"Could not auto-detect framework for app type: {type(app).__name__}")
        return None

    @classmethod
    def install(cls, app: Any, notifier: "Notifier") -> "BaseMiddleware":
        """Install error reporting on an application.

        Args:
            app: The web application instance.
            notifier: The notifier receiving unhandled request exceptions.

        Returns:
            The installed framework middleware.

        Raises:
            ConfigurationError: If no registered adapter handles the app.
        """
        adapter = cls.auto_detect(app)
        if adapter is None:
            raise ConfigurationError(
                f"Could not detect framework for application type: {type(app).__name__}. "
                f"Supported frameworks: {cls.list_frameworks()}"
            )

        middleware = adapter.create_middleware(app, notifier)
        logger.info(f"Error reporting installed for {adapter.get_framework_name()} app")
        return middleware
