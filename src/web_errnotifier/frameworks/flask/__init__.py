"""Flask framework integration for web-errnotifier.

Public API:
    - FlaskAdapter: Framework adapter for Flask applications
    - FlaskMiddleware: Reports unhandled request exceptions
"""

import flask  # noqa: F401

from .adapter import FlaskAdapter
from .middleware import FlaskMiddleware

__all__ = [
    "FlaskAdapter",
    "FlaskMiddleware",
]
