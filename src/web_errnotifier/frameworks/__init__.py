"""Framework integrations for web-errnotifier.

Importing this module registers the adapters of every installed
framework with the FrameworkRegistry.

Supported Frameworks:
    - Flask: unhandled request exceptions via teardown_request
    - FastAPI/Starlette: unhandled request exceptions via ASGI middleware
"""

import logging
from typing import List

logger = logging.getLogger(__name__)

# Each framework module registers itself via @FrameworkRegistry.register
_discovered_frameworks: List[str] = []


def _discover_flask() -> bool:
    """Attempt to discover and register the Flask adapter."""
    try:
        from . import flask  # noqa: F401

        _discovered_frameworks.append("flask")
        logger.debug("Discovered Flask framework adapter")
        return True
    except ImportError:
        logger.debug("Flask not available, skipping adapter registration")
        return False


def _discover_fastapi() -> bool:
    """Attempt to discover and register the FastAPI adapter."""
    try:
        from . import fastapi  # noqa: F401

        _discovered_frameworks.append("fastapi")
        logger.debug("Discovered FastAPI framework adapter")
        return True
    except ImportError:
        logger.debug("Starlette not available, skipping adapter registration")
        return False


def discover_frameworks() -> List[str]:
    """Discover and register all available framework adapters.

    Returns:
        List of discovered framework names.
    """
    if not _discovered_frameworks:
        _discover_flask()
        _discover_fastapi()

    return _discovered_frameworks.copy()


discover_frameworks()


__all__ = [
    "discover_frameworks",
]
