"""Core framework abstraction layer.

Public API:
    - FrameworkRegistry: Registry of framework adapters
    - BaseAdapter: Abstract base class for framework adapters
    - BaseMiddleware: Abstract base class for middleware implementations

Example:
    # Adding support for a new framework
    from web_errnotifier.core import BaseAdapter, BaseMiddleware, FrameworkRegistry

    @FrameworkRegistry.register("django")
    class DjangoAdapter(BaseAdapter["WSGIHandler"]):
        ...
"""

from .base_adapter import BaseAdapter
from .base_middleware import BaseMiddleware
from .registry import FrameworkRegistry

__all__ = [
    "FrameworkRegistry",
    "BaseAdapter",
    "BaseMiddleware",
]
