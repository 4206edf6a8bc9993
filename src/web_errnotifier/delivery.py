"""Asynchronous report delivery.

This module provides the DeliveryQueue class: a bounded in-memory queue
drained by a small pool of background threads, so producers never wait
on the network.
"""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List, Optional, TYPE_CHECKING

from .config import OVERFLOW_DROP_OLDEST, OVERFLOW_POLICIES, OVERFLOW_REJECT_NEW
from .exceptions import ConfigurationError, QueueFullError
from .models import DeliveryResult, FailureCause, QueueEntry

if TYPE_CHECKING:
    from .models import Report
    from .sender import Sender

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DrainResult:
    """Outcome of a shutdown drain.

    Attributes:
        delivered: Entries delivered between the drain request and its end.
        dropped: Queued entries abandoned when the deadline passed.
        in_flight: Sends still running at the deadline. They make no
            further retries: a transient failure ends DROPPED (ABANDONED), a
            late success ends DELIVERED. Their outcome reaches callbacks but
            is not counted in ``delivered``.
        timed_out: True if the deadline passed before the queue emptied.
    """

    delivered: int
    dropped: int
    in_flight: int = 0
    timed_out: bool = False


class DeliveryQueue:
    """Bounded FIFO with background delivery workers.

    ``enqueue`` only holds the queue lock long enough to append, and
    never blocks on a full queue: the overflow policy either evicts the
    oldest entry ("drop_oldest") or raises QueueFullError ("reject_new").

    Worker threads are started lazily on the first enqueue. Every entry
    that reaches a final state (delivered, failed, dropped) is passed to
    the ``on_complete`` callback.

    Attributes:
        sender: The Sender used by workers.
        capacity: Maximum number of queued entries.
        overflow_policy: "drop_oldest" or "reject_new".
        workers: Number of worker threads.

    Example:
        queue = DeliveryQueue(sender, capacity=1000)

        # Enqueue a report (non-blocking)
        queue.enqueue(report)

        # Graceful shutdown
        queue.drain(timeout=5.0)
    """

    def __init__(
        self,
        sender: "Sender",
        capacity: int = 1000,
        overflow_policy: str = OVERFLOW_DROP_OLDEST,
        workers: int = 1,
        on_complete: Optional[Callable[[QueueEntry], None]] = None,
    ) -> None:
        """Initialize the delivery queue.

        Args:
            sender: The Sender used to deliver reports.
            capacity: Maximum number of queued entries.
            overflow_policy: What to do when the queue is full.
            workers: Number of worker threads.
            on_complete: Called with each entry once it reaches a final state.

        Raises:
            ConfigurationError: If capacity, policy or workers are invalid.
        """
        if capacity <= 0:
            raise ConfigurationError(f"capacity must be positive, got {capacity}")
        if overflow_policy not in OVERFLOW_POLICIES:
            raise ConfigurationError(f"Unknown overflow policy: {overflow_policy!r}")
        if workers <= 0:
            raise ConfigurationError(f"workers must be positive, got {workers}")

        self.sender = sender
        self.capacity = capacity
        self.overflow_policy = overflow_policy
        self.workers = workers
        self._on_complete = on_complete

        self._entries: Deque[QueueEntry] = deque()
        self._cond = threading.Condition()
        self._threads: List[threading.Thread] = []
        self._in_flight = 0
        self._delivered = 0
        self._closed = False
        self._cancel = threading.Event()
        self._drain_lock = threading.Lock()
        self._drain_result: Optional[DrainResult] = None

    def enqueue(self, report: "Report") -> QueueEntry:
        """Queue a report for delivery.

        Args:
            report: The filtered report.

        Returns:
            The QueueEntry tracking the report.

        Raises:
            QueueFullError: If the queue is closed, or full under the
                "reject_new" policy.
        """
        entry = QueueEntry(report=report)
        evicted: Optional[QueueEntry] = None

        with self._cond:
            if self._closed:
                raise QueueFullError(f"Delivery queue is closed, report {report.id} rejected")

            if len(self._entries) >= self.capacity:
                if self.overflow_policy == OVERFLOW_REJECT_NEW:
                    raise QueueFullError(
                        f"Delivery queue full ({self.capacity}), report {report.id} rejected"
                    )
                evicted = self._entries.popleft()
                evicted.mark_dropped()

            self._entries.append(entry)
            self._ensure_workers()
            self._cond.notify()

        if evicted is not None:
            logger.warning(
                f"Delivery queue full, dropped oldest report {evicted.report.id} "
                f"({evicted.report.fault_type})"
            )
            self._complete(evicted)

        return entry

    def _ensure_workers(self) -> None:
        # Called with the condition held
        while len(self._threads) < self.workers:
            thread = threading.Thread(
                target=self._worker_loop,
                name=f"errnotifier-worker-{len(self._threads)}",
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()

    def _worker_loop(self) -> None:
        """Take entries off the queue and send them until closed and empty."""
        while True:
            with self._cond:
                while not self._entries and not self._closed:
                    self._cond.wait()
                if not self._entries or self._cancel.is_set():
                    return
                entry = self._entries.popleft()
                entry.mark_sending()
                self._in_flight += 1

            try:
                result = self.sender.send(entry.report, cancel=self._cancel)
            except Exception as e:
                logger.error(f"Unexpected error sending report {entry.report.id}: {e}", exc_info=True)
                result = DeliveryResult.failed(FailureCause.NETWORK, error=str(e))

            # Outcome recorded before the entry leaves in_flight
            self._finish(entry, result)

            with self._cond:
                self._in_flight -= 1
                if result.success:
                    self._delivered += 1
                self._cond.notify_all()

    def _finish(self, entry: QueueEntry, result: DeliveryResult) -> None:
        if result.success:
            entry.mark_delivered(result)
            logger.debug(f"Report {entry.report.id} delivered after {result.attempts} attempt(s)")
        elif result.cause is FailureCause.ABANDONED:
            entry.mark_dropped(result)
        else:
            entry.mark_failed(result)
            logger.error(
                f"Report {entry.report.id} moved to dead letters after "
                f"{result.attempts} attempt(s): {result.error}"
            )
        self._complete(entry)

    def _complete(self, entry: QueueEntry) -> None:
        if self._on_complete is None:
            return
        try:
            self._on_complete(entry)
        except Exception as e:
            logger.error(f"Error in delivery callback: {e}", exc_info=True)

    def drain(self, timeout: float) -> DrainResult:
        """Stop accepting reports and flush the queue within a deadline.

        Workers keep sending until the queue is empty or the deadline
        passes. Entries still queued at the deadline are dropped; sends
        in flight are told not to retry. Calling drain again returns the
        first result.

        Args:
            timeout: Maximum time to wait in seconds.

        Returns:
            A DrainResult with the drain counts.
        """
        with self._drain_lock:
            if self._drain_result is not None:
                return self._drain_result

            deadline = time.monotonic() + max(0.0, timeout)
            logger.info(f"Draining delivery queue (timeout={timeout}s)...")

            with self._cond:
                self._closed = True
                delivered_before = self._delivered
                self._cond.notify_all()

                while (self._entries or self._in_flight) and self._threads:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        break
                    self._cond.wait(remaining)

                self._cancel.set()
                abandoned = list(self._entries)
                self._entries.clear()
                in_flight = self._in_flight
                delivered = self._delivered - delivered_before
                self._cond.notify_all()

            for entry in abandoned:
                entry.mark_dropped()
                self._complete(entry)

            timed_out = bool(abandoned or in_flight)
            if timed_out:
                logger.warning(
                    f"Drain deadline reached: {len(abandoned)} queued report(s) dropped, "
                    f"{in_flight} send(s) still in flight"
                )

            self._drain_result = DrainResult(
                delivered=delivered,
                dropped=len(abandoned),
                in_flight=in_flight,
                timed_out=timed_out,
            )
            logger.info(f"Delivery queue drained: {self._drain_result}")
            return self._drain_result

    @property
    def pending_count(self) -> int:
        """Number of entries waiting in the queue."""
        with self._cond:
            return len(self._entries)

    @property
    def in_flight(self) -> int:
        """Number of entries currently being sent."""
        with self._cond:
            return self._in_flight

    @property
    def is_closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return self.pending_count
