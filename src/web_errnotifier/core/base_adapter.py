"""Base adapter for framework integration.

Adapters bridge a web framework and the notifier: they recognise an
application object and install the middleware reporting its unhandled
exceptions.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from ..notifier import Notifier
    from .base_middleware import BaseMiddleware

AppType = TypeVar("AppType")


class BaseAdapter(ABC, Generic[AppType]):
    """Abstract base class for framework adapters.

    Example:
        @FrameworkRegistry.register("flask")
        class FlaskAdapter(BaseAdapter["Flask"]):
            def can_handle(self, app): ...
            def create_middleware(self, app, notifier): ...
    """

    @abstractmethod
    def create_middleware(self, app: AppType, notifier: "Notifier") -> "BaseMiddleware":
        """Create and install a framework-specific middleware.

        Args:
            app: The framework application instance.
            notifier: The notifier receiving captured exceptions.

        Returns:
            The installed middleware instance.
        """
        pass

    def can_handle(self, app: Any) -> bool:
        """Check if this adapter can handle the given application.

        Args:
            app: The application instance to check.

        Returns:
            True if this adapter can handle the app. Defaults to False.
        """
        return False

    def get_framework_name(self) -> str:
        return self.__class__.__name__.replace("Adapter", "").lower()
