"""Notifier facade.

This module provides the Notifier class, the single entry point producers
call to report faults, and the process-wide default notifier used by the
module-level API.
"""

import logging
import socket
import threading
import time
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple, Union

from . import __version__
from .config import NotifierConfig, get_default_config
from .delivery import DeliveryQueue, DrainResult
from .exceptions import MalformedInputError, QueueFullError
from .filters import FilterChain, build_filters, performance_only
from .models import (
    DeliveryResult,
    Discarded,
    EntryStatus,
    NotifierStats,
    QueueEntry,
    Report,
)
from .normalizer import build_report
from .sender import Sender
from .transports import BaseTransport, build_transport

logger = logging.getLogger(__name__)

FilterSpec = Union[Callable[[Report], Optional[Report]], Tuple[Callable[[Report], Optional[Report]], int]]
DeliveryCallback = Callable[[QueueEntry, Optional[DeliveryResult]], None]


class Notifier:
    """Error notifier.

    Normalizes captured faults into reports, runs them through the filter
    chain, and delivers them either asynchronously through the delivery
    queue (``notify``) or inline (``notify_sync``).

    ``notify`` never raises and never blocks on the network. ``notify_sync``
    blocks until the report is delivered, permanently rejected, or its
    deadline passes; it is meant for the last report before the process
    exits.

    Attributes:
        config: The notifier configuration.

    Example:
        notifier = Notifier(NotifierConfig(endpoint=url, api_key=key))
        notifier.add_filter(KeysFilter(), priority=10)

        try:
            do_work()
        except Exception as exc:
            notifier.notify(exc, context={"user_id": 42})

        notifier.shutdown(timeout=5.0)
    """

    def __init__(
        self,
        config: Optional[NotifierConfig] = None,
        transport: Optional[BaseTransport] = None,
        filters: Optional[Iterable[FilterSpec]] = None,
    ) -> None:
        """Initialize the notifier.

        Args:
            config: The notifier configuration. Uses the default
                (environment-based) configuration if None.
            transport: Optional transport; built from the config if None.
            filters: Optional filters, each a filter or (filter, priority).

        Raises:
            ConfigurationError: If the transport or filter configuration
                is invalid.
        """
        self.config = config or get_default_config()
        self._transport = transport
        if self._transport is None and self.config.enabled:
            self._transport = build_transport(self.config)

        self._filter_chain = FilterChain()
        self._stats = NotifierStats()
        self._callbacks: List[DeliveryCallback] = []
        self._lock = threading.Lock()
        self._sender: Optional[Sender] = None
        self._queue: Optional[DeliveryQueue] = None
        self._shutdown = False
        self._drain_result: Optional[DrainResult] = None
        self._base_context = {
            "environment": self.config.environment,
            "hostname": socket.gethostname(),
            "notifier": f"web-errnotifier/{__version__}",
        }

        for filter, priority in build_filters(self.config.filter_list):
            self.add_filter(filter, priority)
        for spec in filters or ():
            if isinstance(spec, tuple):
                self.add_filter(spec[0], spec[1])
            else:
                self.add_filter(spec)

    @property
    def transport(self) -> BaseTransport:
        """Get the transport (lazy loaded).

        Returns:
            The transport instance.
        """
        if self._transport is None:
            self._transport = build_transport(self.config)
        return self._transport

    @property
    def sender(self) -> Sender:
        """Get the sender (lazy loaded).

        Returns:
            The Sender instance.
        """
        if self._sender is None:
            self._sender = Sender.from_config(self.transport, self.config)
        return self._sender

    @property
    def queue(self) -> DeliveryQueue:
        """Get the delivery queue (lazy loaded).

        Returns:
            The DeliveryQueue instance.
        """
        if self._queue is None:
            with self._lock:
                if self._queue is None:
                    self._queue = DeliveryQueue(
                        self.sender,
                        capacity=self.config.queue_size,
                        overflow_policy=self.config.overflow_policy,
                        workers=self.config.workers,
                        on_complete=self._on_complete,
                    )
        return self._queue

    @property
    def filters(self) -> FilterChain:
        return self._filter_chain

    @property
    def stats(self) -> NotifierStats:
        return self._stats

    @property
    def pending_count(self) -> int:
        """Get the number of reports waiting for delivery.

        Returns:
            Number of reports in the queue.
        """
        return self._queue.pending_count if self._queue is not None else 0

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    def add_filter(
        self,
        filter: Callable[[Report], Optional[Report]],
        priority: int = 0,
        name: Optional[str] = None,
    ) -> None:
        """Register a filter for all reports.

        Args:
            filter: A BaseFilter or callable returning a report or None.
            priority: Lower values run first.
            name: Optional display name for logs.
        """
        self._filter_chain.add_filter(filter, priority, name)

    def add_performance_filter(
        self,
        filter: Callable[[Report], Optional[Report]],
        priority: int = 0,
        name: Optional[str] = None,
    ) -> None:
        """Register a filter for reports carrying a performance attachment.

        Args:
            filter: A BaseFilter or callable returning a report or None.
            priority: Lower values run first.
            name: Optional display name for logs.
        """
        self._filter_chain.add_filter(performance_only(filter), priority, name)

    def add_delivery_callback(self, callback: DeliveryCallback) -> None:
        """Register a callback for async delivery outcomes.

        The callback receives the QueueEntry and its DeliveryResult (None
        for entries dropped before being sent). It runs on a worker thread
        or, for overflow drops, on the producer's thread.

        Args:
            callback: Callable taking (entry, result).
        """
        self._callbacks.append(callback)

    def build_report(
        self,
        fault: Any,
        context: Optional[Mapping[str, Any]] = None,
        tag: Optional[str] = None,
        performance: Optional[Any] = None,
    ) -> Optional[Report]:
        """Normalize and filter a fault without delivering it.

        Args:
            fault: The captured fault.
            context: Optional context attributes.
            tag: Optional producer tag.
            performance: Optional performance attachment or mapping.

        Returns:
            The filtered report, or None if the fault was malformed or
            a filter discarded it.
        """
        try:
            report = build_report(
                fault,
                context=context,
                tag=tag,
                performance=performance,
                base_context=self._base_context,
            )
        except MalformedInputError as e:
            self._stats.increment("malformed")
            logger.error(f"Dropping malformed fault: {e}")
            return None

        result = self._filter_chain.run(report)
        if isinstance(result, Discarded):
            self._stats.increment("discarded")
            logger.debug(f"Report {report.id} discarded by {result.filter_name}")
            return None
        return result

    def notify(
        self,
        fault: Any,
        context: Optional[Mapping[str, Any]] = None,
        tag: Optional[str] = None,
        performance: Optional[Any] = None,
    ) -> Optional[QueueEntry]:
        """Report a fault asynchronously.

        Returns immediately. Delivery outcomes are only visible through
        logs, stats and delivery callbacks.

        Args:
            fault: The captured fault (exception, message or mapping).
            context: Optional context attributes.
            tag: Optional producer tag (e.g. "sql", "job").
            performance: Optional performance attachment or mapping.

        Returns:
            The QueueEntry if queued, None if skipped, discarded or dropped.
        """
        if not self.config.enabled:
            return None

        if self._shutdown:
            self._stats.increment("dropped")
            logger.warning("Notifier is shut down, report skipped")
            return None

        try:
            report = self.build_report(fault, context, tag, performance)
            if report is None:
                return None
            entry = self.queue.enqueue(report)
        except QueueFullError as e:
            self._stats.increment("dropped")
            logger.warning(str(e))
            return None
        except Exception as e:
            # Never let reporting errors reach the producer
            logger.error(f"Error queueing report: {e}", exc_info=True)
            return None

        self._stats.increment("queued")
        logger.debug(f"Queued report {report.id} ({report.fault_type})")
        return entry

    def notify_sync(
        self,
        fault: Any,
        context: Optional[Mapping[str, Any]] = None,
        tag: Optional[str] = None,
        performance: Optional[Any] = None,
        timeout: Optional[float] = None,
    ) -> Optional[DeliveryResult]:
        """Report a fault and wait for the delivery outcome.

        Retries transient failures like the async path, but never past the
        deadline.

        Args:
            fault: The captured fault (exception, message or mapping).
            context: Optional context attributes.
            tag: Optional producer tag.
            performance: Optional performance attachment or mapping.
            timeout: Hard deadline in seconds; defaults to
                config.sync_timeout_seconds.

        Returns:
            The final DeliveryResult (success or failure), or None if
            nothing was sent (disabled, shut down, malformed, or
            discarded).
        """
        if not self.config.enabled:
            return None

        if self._shutdown:
            self._stats.increment("dropped")
            logger.warning("Notifier is shut down, synchronous report skipped")
            return None

        report = self.build_report(fault, context, tag, performance)
        if report is None:
            return None

        actual_timeout = timeout if timeout is not None else self.config.sync_timeout_seconds
        result = self.sender.send(report, deadline=time.monotonic() + actual_timeout)

        if result.success:
            self._stats.increment("delivered")
            logger.debug(f"Report {report.id} delivered synchronously")
        else:
            self._stats.increment("failed")
            logger.error(
                f"Synchronous delivery of report {report.id} failed "
                f"({result.cause.value if result.cause else 'unknown'}): {result.error}"
            )
        return result

    def _on_complete(self, entry: QueueEntry) -> None:
        if entry.status is EntryStatus.DELIVERED:
            self._stats.increment("delivered")
        elif entry.status is EntryStatus.FAILED:
            self._stats.increment("failed")
        elif entry.status is EntryStatus.DROPPED:
            self._stats.increment("dropped")

        for callback in list(self._callbacks):
            try:
                callback(entry, entry.result)
            except Exception as e:
                logger.error(f"Error in delivery callback: {e}", exc_info=True)

    def shutdown(self, timeout: Optional[float] = None) -> DrainResult:
        """Drain pending reports and release the transport.

        Reports still queued when the deadline passes are dropped. Calling
        shutdown again returns the first result.

        Args:
            timeout: Drain deadline in seconds. Uses
                config.graceful_shutdown_seconds if None.

        Returns:
            The DrainResult of the delivery queue.
        """
        with self._lock:
            if self._shutdown:
                return self._drain_result or DrainResult(delivered=0, dropped=0)
            self._shutdown = True

        actual_timeout = timeout if timeout is not None else self.config.graceful_shutdown_seconds
        logger.info(f"Shutting down notifier (timeout={actual_timeout}s)...")

        if self._queue is not None:
            result = self._queue.drain(actual_timeout)
        else:
            result = DrainResult(delivered=0, dropped=0)

        if self._transport is not None:
            try:
                self._transport.close()
            except Exception as e:
                logger.warning(f"Error closing transport: {e}")

        self._drain_result = result
        logger.info(f"Notifier shutdown complete: {self._stats.snapshot()}")
        return result


# Process-wide notifier used by the module-level API and the hooks
_default_notifier: Optional[Notifier] = None


def get_default_notifier() -> Optional[Notifier]:
    """Get the process-wide notifier.

    Returns:
        The notifier set by configure(), or None if not configured.
    """
    return _default_notifier


def set_default_notifier(notifier: Optional[Notifier]) -> None:
    """Set the process-wide notifier.

    Args:
        notifier: The notifier to use, or None to clear it.
    """
    global _default_notifier
    _default_notifier = notifier
