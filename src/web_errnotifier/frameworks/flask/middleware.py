"""Flask middleware for error reporting.

Reports exceptions that escape Flask view functions. Exceptions handled
by an error handler (including HTTPException aborts) are not reported.
"""

import logging
from typing import Any, Dict, Optional, TYPE_CHECKING

from ...core import BaseMiddleware

if TYPE_CHECKING:
    from flask import Flask

    from ...notifier import Notifier

logger = logging.getLogger(__name__)


class FlaskMiddleware(BaseMiddleware):
    """Flask middleware reporting unhandled request exceptions.

    Hooks into ``teardown_request``, which Flask calls with the unhandled
    exception once the request context is popped, also when the app
    propagates exceptions in testing or debug mode.

    Attributes:
        notifier: The notifier receiving captured exceptions.

    Example:
        from flask import Flask
        from web_errnotifier import Notifier
        from web_errnotifier.frameworks.flask import FlaskMiddleware

        app = Flask(__name__)
        FlaskMiddleware(Notifier()).install(app)
    """

    def __init__(self, notifier: "Notifier") -> None:
        super().__init__(notifier)
        self._app: "Optional[Flask]" = None

    def install(self, app: "Flask") -> None:
        """Install the middleware into a Flask application.

        Args:
            app: The Flask application instance.
        """
        self._app = app
        app.teardown_request(self._teardown_request)
        logger.debug(f"FlaskMiddleware installed on app: {app.name}")

    def _teardown_request(self, exception: Optional[BaseException] = None) -> None:
        """Report the exception the request ended with, if any.

        Args:
            exception: The unhandled exception, or None.
        """
        if exception is None:
            return

        try:
            context = self._get_request_context()
        except Exception as e:
            logger.debug(f"Could not read request context: {e}")
            context = {"component": "flask"}

        self.report_exception(exception, context)

    def _get_request_context(self) -> Dict[str, str]:
        """Get context attributes from the current Flask request.

        Returns:
            Dictionary with request context.
        """
        from flask import request

        context: Dict[str, Any] = {
            "component": "flask",
            "method": request.method,
            "path": request.path,
            "url": request.url,
            "remote_addr": request.remote_addr,
            "endpoint": request.endpoint,
        }
        user_agent = request.headers.get("User-Agent")
        if user_agent:
            context["user_agent"] = user_agent
        if request.query_string:
            context["query_string"] = request.query_string.decode("utf-8", errors="ignore")

        return self._clean_context(context)
