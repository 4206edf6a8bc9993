"""FastAPI middleware for error reporting.

Uses a pure ASGI middleware rather than BaseHTTPMiddleware, so the
exception is seen exactly as it leaves the application and the
response stream is never buffered.
"""

import logging
from typing import Any, Dict, Optional, TYPE_CHECKING

from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Receive, Scope, Send

from ...core import BaseMiddleware

if TYPE_CHECKING:
    from starlette.applications import Starlette

    from ...notifier import Notifier

logger = logging.getLogger(__name__)


class FastAPIMiddleware(BaseMiddleware):
    """FastAPI middleware reporting unhandled request exceptions.

    Exceptions escaping the application are reported with request context
    and re-raised, so Starlette's own error handling still produces the
    500 response.

    Attributes:
        notifier: The notifier receiving captured exceptions.

    Example:
        from fastapi import FastAPI
        from web_errnotifier import Notifier
        from web_errnotifier.frameworks.fastapi import FastAPIMiddleware

        app = FastAPI()
        FastAPIMiddleware(Notifier()).install(app)
    """

    def __init__(self, notifier: "Notifier") -> None:
        super().__init__(notifier)
        self._app: Optional["Starlette"] = None

    def install(self, app: "Starlette") -> None:
        """Install the middleware into a FastAPI application.

        Args:
            app: The FastAPI (or Starlette) application instance.
        """
        self._app = app

        parent = self

        class ErrorCaptureMiddleware:
            """ASGI middleware that reports exceptions escaping the app."""

            def __init__(self, app: ASGIApp) -> None:
                # add_middleware passes app as keyword argument
                self.app = app

            async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
                if scope["type"] not in ("http", "websocket"):
                    await self.app(scope, receive, send)
                    return

                try:
                    await self.app(scope, receive, send)
                except Exception as exc:
                    parent.report_exception(exc, parent._get_request_context(scope))
                    raise

        app.add_middleware(ErrorCaptureMiddleware)
        logger.debug(f"FastAPIMiddleware installed on app: {type(app).__name__}")

    def _get_request_context(self, scope: Scope) -> Dict[str, str]:
        """Get context attributes from an ASGI scope.

        Args:
            scope: The ASGI connection scope.

        Returns:
            Dictionary with request context.
        """
        try:
            connection = HTTPConnection(scope)
            context: Dict[str, Any] = {
                "component": "fastapi",
                "method": scope.get("method", scope["type"].upper()),
                "path": connection.url.path,
                "url": str(connection.url),
            }
            if connection.client:
                context["remote_addr"] = connection.client.host
            user_agent = connection.headers.get("user-agent")
            if user_agent:
                context["user_agent"] = user_agent
            if connection.url.query:
                context["query_string"] = connection.url.query
            route = scope.get("route")
            if route is not None and getattr(route, "path", None):
                context["endpoint"] = route.path
        except Exception as e:
            logger.debug(f"Could not read request context: {e}")
            context = {"component": "fastapi"}

        return self._clean_context(context)
