"""Web Error Notifier - Asynchronous error reporting for Python applications.

This package captures faults (exceptions, messages, performance events),
normalizes them into reports, runs them through a filter chain and
delivers them to a reporting backend from background threads, with
retries and a bounded queue. Flask and FastAPI request errors are
reported automatically through a middleware.

Quick Start:
    import web_errnotifier

    web_errnotifier.configure(
        endpoint="https://errors.example.com/api/v1/reports",
        api_key="xxx",
    )

    try:
        do_work()
    except Exception as exc:
        web_errnotifier.notify(exc, context={"user_id": 42})

Quick Start (Flask):
    from flask import Flask
    from web_errnotifier import ErrorReportingMiddleware

    app = Flask(__name__)
    ErrorReportingMiddleware(app, endpoint="https://errors.example.com/api/v1/reports")

Quick Start (FastAPI):
    from fastapi import FastAPI
    from web_errnotifier import ErrorReportingMiddleware

    app = FastAPI()
    ErrorReportingMiddleware(app)  # Auto-detects FastAPI, config from env

Filters:
    from web_errnotifier import NotifierConfig, configure

    config = NotifierConfig(
        endpoint="https://errors.example.com/api/v1/reports",
        filter_list=[
            {"type": "keys", "priority": -10},
            {"type": "ignore", "fault_types": ["KeyboardInterrupt"]},
        ],
    )
    notifier = configure(config)
    notifier.add_performance_filter(SqlFilter(dialect="postgresql"))

Process Exit:
    from web_errnotifier import install_exit_hook

    install_exit_hook()  # notify_sync on uncaught exceptions, drain at exit
"""

__version__ = "0.1.0"

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, TYPE_CHECKING

from .config import NotifierConfig, get_default_config, set_default_config
from .delivery import DrainResult
from .exceptions import (
    ConfigurationError,
    FilterError,
    MalformedInputError,
    PermanentTransportError,
    QueueFullError,
    TransientTransportError,
    TransportError,
    WebErrNotifierError,
)
from .filters import (
    BaseFilter,
    ContextFilter,
    FilterChain,
    IgnoreFilter,
    KeysFilter,
    SqlFilter,
    register_filter,
)
from .hooks import install_exit_hook, report_exceptions
from .models import (
    BacktraceFrame,
    DeliveryResult,
    EntryStatus,
    FailureCause,
    NotifierStats,
    PerformanceAttachment,
    QueueEntry,
    Report,
)
from .notifier import Notifier, get_default_notifier, set_default_notifier
from .transports import BaseTransport, register_transport

if TYPE_CHECKING:
    from .core import BaseMiddleware

logger = logging.getLogger(__name__)

LOG_FILENAME = "errnotifier.log"

# Track if file logging has been set up
_file_handler_initialized = False


def _setup_file_logging(log_path: str, log_level: int = logging.INFO) -> None:
    """Set up file logging for the web_errnotifier package.

    Creates a rotating log file in the specified directory. Failures are
    logged as warnings, never raised.

    Args:
        log_path: Directory path for log files.
        log_level: Logging level (default: INFO).
    """
    global _file_handler_initialized

    if _file_handler_initialized:
        return

    try:
        log_dir = Path(log_path)
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / LOG_FILENAME

        # 10MB max, keep 5 backups
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)

        package_logger = logging.getLogger("web_errnotifier")
        package_logger.addHandler(file_handler)

        if package_logger.level == logging.NOTSET or package_logger.level > log_level:
            package_logger.setLevel(log_level)

        _file_handler_initialized = True
        logger.info(f"File logging initialized: {log_file}")

    except Exception as e:
        logger.warning(f"Failed to set up file logging: {e}")


def configure(config: Optional[NotifierConfig] = None, **kwargs: Any) -> Notifier:
    """Create the process-wide notifier.

    A previously configured notifier is shut down first.

    Args:
        config: Notifier configuration. Uses the environment-based
            default if None.
        **kwargs: Configuration values overriding config fields
            (e.g. endpoint="https://...").

    Returns:
        The new default Notifier.

    Raises:
        ConfigurationError: If the configuration is invalid.
    """
    if config is None:
        config = get_default_config()
    if kwargs:
        config = config.merge(**kwargs)

    set_default_config(config)
    _setup_file_logging(config.log_path)

    previous = get_default_notifier()
    if previous is not None and not previous.is_shutdown:
        logger.info("Replacing configured notifier")
        previous.shutdown()

    notifier = Notifier(config)
    set_default_notifier(notifier)

    logger.info(
        f"Error notifier configured - transport: {config.transport}, "
        f"environment: {config.environment}, queue_size: {config.queue_size}, "
        f"max_retries: {config.max_retries}"
    )
    if config.filter_list:
        filter_types = [f.get("type", "unknown") for f in config.filter_list]
        logger.info(f"Filters configured: {filter_types}")
    return notifier


def get_notifier() -> Optional[Notifier]:
    """Get the process-wide notifier.

    Returns:
        The configured Notifier, or None if configure() was not called.
    """
    return get_default_notifier()


def _require_notifier(operation: str) -> Optional[Notifier]:
    notifier = get_default_notifier()
    if notifier is None:
        logger.warning(f"{operation}() called before configure(), ignoring")
    return notifier


def notify(
    fault: Any,
    context: Optional[Mapping[str, Any]] = None,
    tag: Optional[str] = None,
    performance: Optional[Any] = None,
) -> Optional[QueueEntry]:
    """Report a fault asynchronously through the default notifier.

    See Notifier.notify.
    """
    notifier = _require_notifier("notify")
    if notifier is None:
        return None
    return notifier.notify(fault, context=context, tag=tag, performance=performance)


def notify_sync(
    fault: Any,
    context: Optional[Mapping[str, Any]] = None,
    tag: Optional[str] = None,
    performance: Optional[Any] = None,
    timeout: Optional[float] = None,
) -> Optional[DeliveryResult]:
    """Report a fault synchronously through the default notifier.

    See Notifier.notify_sync.
    """
    notifier = _require_notifier("notify_sync")
    if notifier is None:
        return None
    return notifier.notify_sync(
        fault, context=context, tag=tag, performance=performance, timeout=timeout
    )


def add_filter(filter: Callable[[Report], Optional[Report]], priority: int = 0) -> None:
    """Register a filter on the default notifier.

    Raises:
        ConfigurationError: If configure() was not called.
    """
    notifier = get_default_notifier()
    if notifier is None:
        raise ConfigurationError("add_filter() called before configure()")
    notifier.add_filter(filter, priority)


def add_performance_filter(
    filter: Callable[[Report], Optional[Report]], priority: int = 0
) -> None:
    """Register a performance filter on the default notifier.

    Raises:
        ConfigurationError: If configure() was not called.
    """
    notifier = get_default_notifier()
    if notifier is None:
        raise ConfigurationError("add_performance_filter() called before configure()")
    notifier.add_performance_filter(filter, priority)


def shutdown(timeout: Optional[float] = None) -> Optional[DrainResult]:
    """Drain and shut down the default notifier.

    Args:
        timeout: Drain deadline in seconds. Uses config value if None.

    Returns:
        The DrainResult, or None if configure() was not called.
    """
    notifier = _require_notifier("shutdown")
    if notifier is None:
        return None
    return notifier.shutdown(timeout)


class ErrorReportingMiddleware:
    """Error reporting middleware for web applications.

    Automatically detects the web framework and installs the middleware
    reporting unhandled request exceptions.

    Attributes:
        notifier: The notifier receiving captured exceptions.
        middleware: The framework-specific middleware instance.

    Example:
        # Notifier configured from the environment
        from flask import Flask
        from web_errnotifier import ErrorReportingMiddleware

        app = Flask(__name__)
        ErrorReportingMiddleware(app)

        # With quick config kwargs
        ErrorReportingMiddleware(app, endpoint="https://...", api_key="xxx")

        # With an existing notifier
        ErrorReportingMiddleware(app, notifier=notifier)
    """

    def __init__(
        self,
        app: Any,
        notifier: Optional[Notifier] = None,
        config: Optional[NotifierConfig] = None,
        **kwargs: Any,
    ) -> None:
        """Initialize the error reporting middleware.

        Args:
            app: The web application instance (e.g., Flask app).
            notifier: Notifier to report to. If None, the default notifier
                is used, or configured from config and kwargs.
            config: Optional configuration used when configuring a notifier.
            **kwargs: Quick configuration parameters that override
                config values.

        Raises:
            ConfigurationError: If the framework cannot be detected or
                configuration is invalid.
        """
        if notifier is None:
            notifier = get_default_notifier()
            if notifier is None or config is not None or kwargs:
                notifier = configure(config, **kwargs)
        self.notifier = notifier

        from . import frameworks  # noqa: F401
        from .core import FrameworkRegistry

        self._middleware: "BaseMiddleware" = FrameworkRegistry.install(app, notifier)

    @property
    def middleware(self) -> "BaseMiddleware":
        return self._middleware

    def shutdown(self, timeout: Optional[float] = None) -> DrainResult:
        """Drain pending reports and shut the notifier down.

        Args:
            timeout: Optional timeout in seconds. Uses config value if None.

        Returns:
            The notifier's DrainResult.
        """
        result = self._middleware.shutdown(timeout)
        logger.info("ErrorReportingMiddleware shutdown complete")
        return result


__all__ = [
    # Version
    "__version__",
    # Facade
    "Notifier",
    "configure",
    "get_notifier",
    "notify",
    "notify_sync",
    "add_filter",
    "add_performance_filter",
    "shutdown",
    # Integrations
    "ErrorReportingMiddleware",
    "report_exceptions",
    "install_exit_hook",
    # Configuration
    "NotifierConfig",
    # Filters
    "BaseFilter",
    "FilterChain",
    "KeysFilter",
    "IgnoreFilter",
    "ContextFilter",
    "SqlFilter",
    "register_filter",
    # Transports
    "BaseTransport",
    "register_transport",
    # Types
    "Report",
    "BacktraceFrame",
    "PerformanceAttachment",
    "QueueEntry",
    "EntryStatus",
    "DeliveryResult",
    "FailureCause",
    "DrainResult",
    "NotifierStats",
    # Exceptions
    "WebErrNotifierError",
    "ConfigurationError",
    "MalformedInputError",
    "FilterError",
    "QueueFullError",
    "TransportError",
    "TransientTransportError",
    "PermanentTransportError",
]
