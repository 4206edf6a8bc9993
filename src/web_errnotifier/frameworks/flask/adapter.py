"""Flask framework adapter."""

from typing import Any, TYPE_CHECKING

from ...core import BaseAdapter, FrameworkRegistry

if TYPE_CHECKING:
    from flask import Flask

    from ...notifier import Notifier
    from .middleware import FlaskMiddleware


@FrameworkRegistry.register("flask")
class FlaskAdapter(BaseAdapter["Flask"]):
    """Flask framework adapter.

    Registered with the FrameworkRegistry on import, so
    ErrorReportingMiddleware detects Flask applications automatically.

    Example:
        from web_errnotifier import ErrorReportingMiddleware

        app = Flask(__name__)
        ErrorReportingMiddleware(app, endpoint="https://errors.example.com/api/v1/reports")
    """

    def create_middleware(self, app: "Flask", notifier: "Notifier") -> "FlaskMiddleware":
        """Create a FlaskMiddleware and install it on the app.

        Args:
            app: The Flask application instance.
            notifier: The notifier receiving captured exceptions.

        Returns:
            The installed FlaskMiddleware.
        """
        from .middleware import FlaskMiddleware

        middleware = FlaskMiddleware(notifier)
        middleware.install(app)
        return middleware

    def can_handle(self, app: Any) -> bool:
        try:
            from flask import Flask

            return isinstance(app, Flask)
        except ImportError:
            return False

    def get_framework_name(self) -> str:
        return "flask"
