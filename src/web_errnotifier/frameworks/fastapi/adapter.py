"""FastAPI framework adapter."""

from typing import Any, TYPE_CHECKING

from ...core import BaseAdapter, FrameworkRegistry

if TYPE_CHECKING:
    from starlette.applications import Starlette

    from ...notifier import Notifier
    from .middleware import FastAPIMiddleware


@FrameworkRegistry.register("fastapi")
class FastAPIAdapter(BaseAdapter["Starlette"]):
    """FastAPI framework adapter.

    Handles FastAPI applications and plain Starlette applications, since
    FastAPI is a Starlette subclass.
    """

    def create_middleware(self, app: "Starlette", notifier: "Notifier") -> "FastAPIMiddleware":
        """Create a FastAPIMiddleware and install it on the app.

        Args:
            app: The FastAPI (or Starlette) application instance.
            notifier: The notifier receiving captured exceptions.

        Returns:
            The installed FastAPIMiddleware.
        """
        from .middleware import FastAPIMiddleware

        middleware = FastAPIMiddleware(notifier)
        middleware.install(app)
        return middleware

    def can_handle(self, app: Any) -> bool:
        try:
            from starlette.applications import Starlette

            return isinstance(app, Starlette)
        except ImportError:
            return False

    def get_framework_name(self) -> str:
        return "fastapi"
