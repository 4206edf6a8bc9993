"""Process-level reporting hooks.

This module provides the ``report_exceptions`` decorator for background
jobs and ``install_exit_hook``, which makes sure an uncaught exception
that ends the process is delivered before it exits.
"""

import asyncio
import atexit
import logging
import sys
import threading
import time
from functools import wraps
from typing import Any, Callable, Optional, TYPE_CHECKING

from .models import PerformanceAttachment
from .notifier import get_default_notifier

if TYPE_CHECKING:
    from .notifier import Notifier

logger = logging.getLogger(__name__)

JOB_TAG = "job"

_exit_hook_installed = False
_exit_hook_lock = threading.Lock()


def _resolve(notifier: Optional["Notifier"]) -> Optional["Notifier"]:
    return notifier if notifier is not None else get_default_notifier()


def _report_job_failure(
    notifier: Optional["Notifier"],
    exc: BaseException,
    job_name: str,
    tag: str,
    started: float,
) -> None:
    target = _resolve(notifier)
    if target is None:
        logger.warning(f"Job {job_name} failed but no notifier is configured")
        return

    duration_ms = (time.perf_counter() - started) * 1000
    try:
        target.notify(
            exc,
            context={"component": "job", "job": job_name},
            tag=tag,
            performance=PerformanceAttachment(
                kind=tag, statement=job_name, duration_ms=duration_ms
            ),
        )
    except Exception as e:
        logger.error(f"Error reporting failure of job {job_name}: {e}", exc_info=True)


def report_exceptions(
    notifier: Optional["Notifier"] = None,
    tag: str = JOB_TAG,
    name: Optional[str] = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator reporting exceptions raised by a background job.

    The exception is reported with the job name and its run time, then
    re-raised so the job runner still sees the failure. Works for plain
    and async functions.

    Args:
        notifier: Notifier to report to. Uses the configured default
            notifier (looked up at failure time) if None.
        tag: Report tag.
        name: Job name. Uses the function's qualified name if None.

    Returns:
        Decorator function.

    Example:
        @report_exceptions()
        def rebuild_index():
            ...

        @report_exceptions(name="billing.charge")
        async def charge(customer_id):
            ...
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        job_name = name or func.__qualname__

        if asyncio.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                started = time.perf_counter()
                try:
                    return await func(*args, **kwargs)
                except Exception as exc:
                    _report_job_failure(notifier, exc, job_name, tag, started)
                    raise

            return async_wrapper

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            try:
                return func(*args, **kwargs)
            except Exception as exc:
                _report_job_failure(notifier, exc, job_name, tag, started)
                raise

        return wrapper

    return decorator


def install_exit_hook(
    notifier: Optional["Notifier"] = None,
    timeout: Optional[float] = None,
) -> bool:
    """Report uncaught exceptions and drain the notifier at exit.

    Wraps ``sys.excepthook`` so the exception ending the main thread is
    delivered with ``notify_sync`` before the previous hook prints it, and
    ``threading.excepthook`` so exceptions ending other threads are queued
    with ``notify``. Registers an ``atexit`` handler that shuts the
    notifier down. KeyboardInterrupt and SystemExit are not reported.

    Installing more than once has no effect.

    Args:
        notifier: Notifier to report to. Uses the configured default
            notifier (looked up at exit time) if None.
        timeout: Deadline for the synchronous delivery. Uses
            config.sync_timeout_seconds if None.

    Returns:
        True if the hooks were installed, False if already installed.
    """
    global _exit_hook_installed

    with _exit_hook_lock:
        if _exit_hook_installed:
            return False
        _exit_hook_installed = True

    previous_excepthook = sys.excepthook
    previous_thread_hook = threading.excepthook

    def excepthook(exc_type: Any, exc: BaseException, tb: Any) -> None:
        target = _resolve(notifier)
        if target is not None and issubclass(exc_type, Exception):
            try:
                target.notify_sync(exc, context={"component": "excepthook"}, timeout=timeout)
            except Exception as e:
                logger.error(f"Error reporting uncaught exception: {e}", exc_info=True)
        previous_excepthook(exc_type, exc, tb)

    def thread_excepthook(args: Any) -> None:
        target = _resolve(notifier)
        if target is not None and args.exc_value is not None and issubclass(args.exc_type, Exception):
            thread_name = args.thread.name if args.thread is not None else ""
            target.notify(
                args.exc_value,
                context={"component": "thread", "thread": thread_name},
            )
        previous_thread_hook(args)

    def shutdown_at_exit() -> None:
        target = _resolve(notifier)
        if target is not None and not target.is_shutdown:
            target.shutdown()

    sys.excepthook = excepthook
    threading.excepthook = thread_excepthook
    atexit.register(shutdown_at_exit)
    logger.debug("Exit hooks installed")
    return True
