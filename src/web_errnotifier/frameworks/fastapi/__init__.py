"""FastAPI framework integration for web-errnotifier.

Works with any Starlette-based application, FastAPI included.

Example:
    from fastapi import FastAPI
    from web_errnotifier import ErrorReportingMiddleware

    app = FastAPI()
    ErrorReportingMiddleware(app)  # Auto-detects FastAPI
"""

import starlette  # noqa: F401

from .adapter import FastAPIAdapter
from .middleware import FastAPIMiddleware

__all__ = [
    "FastAPIAdapter",
    "FastAPIMiddleware",
]
