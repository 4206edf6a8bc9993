"""Data models for web-errnotifier.

This module defines the core data structures used throughout the package,
including Report, QueueEntry, DeliveryResult and the counters exposed by
the notifier.
"""

import json
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple
from uuid import uuid4


@dataclass(frozen=True)
class BacktraceFrame:
    """A single backtrace frame.

    Attributes:
        file: Source file path.
        line: Line number, or None when unknown.
        function: Function or method name.
    """

    file: str
    line: Optional[int]
    function: str

    def to_dict(self) -> Dict[str, Any]:
        return {"file": self.file, "line": self.line, "function": self.function}


@dataclass(frozen=True)
class PerformanceAttachment:
    """Performance data attached to a report.

    Used for tagged events such as SQL statements or job runs. The
    statement is what SQL redaction filters rewrite.

    Attributes:
        kind: Attachment kind, usually the report tag (e.g. "sql", "job").
        statement: Query text or job identifier.
        duration_ms: Measured duration in milliseconds, if known.
        attributes: Extra string attributes.
    """

    kind: str
    statement: str = ""
    duration_ms: Optional[float] = None
    attributes: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "attributes",
            MappingProxyType({str(k): str(v) for k, v in self.attributes.items()}),
        )

    def replace(self, **changes: Any) -> "PerformanceAttachment":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "statement": self.statement,
            "duration_ms": self.duration_ms,
            "attributes": dict(self.attributes),
        }


@dataclass(frozen=True)
class Report:
    """Canonical representation of one captured fault.

    Reports are immutable. Filters that need to change a field build a
    modified copy with :meth:`replace`, so a report handed to the queue or
    the sender is never changed afterwards.

    Attributes:
        id: Unique identifier (UUID) for this report.
        fault_type: Exception class name or equivalent.
        message: Fault message.
        backtrace: Ordered frames, outermost call first.
        context: Read-only mapping of string attributes.
        tag: Optional producer tag (e.g. "sql", "job", "request").
        performance: Optional performance attachment.
        timestamp: When the report was created (UTC).
    """

    id: str
    fault_type: str
    message: str
    backtrace: Tuple[BacktraceFrame, ...] = ()
    context: Mapping[str, str] = field(default_factory=dict)
    tag: Optional[str] = None
    performance: Optional[PerformanceAttachment] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        object.__setattr__(self, "backtrace", tuple(self.backtrace))
        object.__setattr__(
            self,
            "context",
            MappingProxyType({str(k): str(v) for k, v in self.context.items()}),
        )

    @classmethod
    def create(
        cls,
        fault_type: str,
        message: str,
        backtrace: Optional[Tuple[BacktraceFrame, ...]] = None,
        context: Optional[Mapping[str, str]] = None,
        tag: Optional[str] = None,
        performance: Optional[PerformanceAttachment] = None,
    ) -> "Report":
        """Factory method to create a new Report.

        Args:
            fault_type: Exception class name.
            message: Fault message.
            backtrace: Optional backtrace frames.
            context: Optional context attributes.
            tag: Optional producer tag.
            performance: Optional performance attachment.

        Returns:
            A new Report instance.
        """
        return cls(
            id=str(uuid4()),
            fault_type=fault_type,
            message=message,
            backtrace=tuple(backtrace or ()),
            context=context or {},
            tag=tag,
            performance=performance,
        )

    def replace(self, **changes: Any) -> "Report":
        """Return a copy of this report with the given fields replaced."""
        return replace(self, **changes)

    def with_context(self, **attributes: Any) -> "Report":
        """Return a copy with extra context attributes merged in."""
        merged = dict(self.context)
        merged.update({k: str(v) for k, v in attributes.items()})
        return self.replace(context=merged)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation.

        Returns:
            Dictionary with all report data, suitable as a wire payload.
        """
        return {
            "id": self.id,
            "type": self.fault_type,
            "message": self.message,
            "backtrace": [frame.to_dict() for frame in self.backtrace],
            "context": dict(self.context),
            "tag": self.tag,
            "performance": self.performance.to_dict() if self.performance else None,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_json(self) -> str:
        """Convert to JSON string.

        Returns:
            JSON string representation.
        """
        return json.dumps(self.to_dict(), ensure_ascii=False)


@dataclass(frozen=True)
class Discarded:
    """Outcome of a filter chain run that dropped the report.

    Attributes:
        report: The report as seen by the discarding filter.
        filter_name: Name of the filter that discarded it.
    """

    report: Report
    filter_name: str


class FailureCause(Enum):
    """Classified cause of a failed delivery."""

    NETWORK = "network"
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    SERVER_ERROR = "server_error"
    MALFORMED_PAYLOAD = "malformed_payload"
    ABANDONED = "abandoned"

    @property
    def transient(self) -> bool:
        return self in _TRANSIENT_CAUSES


_TRANSIENT_CAUSES = frozenset(
    {FailureCause.NETWORK, FailureCause.RATE_LIMIT, FailureCause.SERVER_ERROR}
)


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of sending one report.

    Attributes:
        success: True when the backend accepted the report.
        cause: Failure classification (None on success).
        status_code: HTTP status of the last attempt, if any.
        attempts: Number of attempts made.
        error: Human-readable error of the last failed attempt.
        retry_after: Delay requested by the backend, in seconds.
    """

    success: bool
    cause: Optional[FailureCause] = None
    status_code: Optional[int] = None
    attempts: int = 1
    error: str = ""
    retry_after: Optional[float] = None

    @classmethod
    def delivered(cls, status_code: Optional[int] = None) -> "DeliveryResult":
        return cls(success=True, status_code=status_code)

    @classmethod
    def failed(
        cls,
        cause: FailureCause,
        error: str = "",
        status_code: Optional[int] = None,
        retry_after: Optional[float] = None,
    ) -> "DeliveryResult":
        return cls(
            success=False,
            cause=cause,
            status_code=status_code,
            error=error,
            retry_after=retry_after,
        )

    @property
    def transient(self) -> bool:
        """True when the failure may succeed if retried."""
        return not self.success and self.cause is not None and self.cause.transient

    @property
    def permanent(self) -> bool:
        """True when the failure must not be retried."""
        return (
            not self.success
            and self.cause is not None
            and self.cause is not FailureCause.ABANDONED
            and not self.cause.transient
        )

    def with_attempts(self, attempts: int) -> "DeliveryResult":
        return replace(self, attempts=attempts)


class EntryStatus(Enum):
    """Status of a queue entry.

    Values:
        PENDING: Waiting in the queue.
        SENDING: Picked up by a worker.
        DELIVERED: Accepted by the backend.
        FAILED: Retry budget exhausted or permanent failure (dead letter).
        DROPPED: Evicted on overflow or abandoned at shutdown.
    """

    PENDING = "pending"
    SENDING = "sending"
    DELIVERED = "delivered"
    FAILED = "failed"
    DROPPED = "dropped"


@dataclass
class QueueEntry:
    """A report waiting for asynchronous delivery.

    Attributes:
        report: The report to deliver.
        enqueued_at: When the entry was queued (UTC).
        retries: Number of retries spent on this entry.
        status: Current entry status.
        result: Final delivery result, once known.
    """

    report: Report
    enqueued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    retries: int = 0
    status: EntryStatus = EntryStatus.PENDING
    result: Optional[DeliveryResult] = None

    def mark_sending(self) -> None:
        """Mark the entry as picked up by a worker."""
        self.status = EntryStatus.SENDING

    def mark_delivered(self, result: DeliveryResult) -> None:
        self.status = EntryStatus.DELIVERED
        self.result = result
        self.retries = max(0, result.attempts - 1)

    def mark_failed(self, result: DeliveryResult) -> None:
        self.status = EntryStatus.FAILED
        self.result = result
        self.retries = max(0, result.attempts - 1)

    def mark_dropped(self, result: Optional[DeliveryResult] = None) -> None:
        self.status = EntryStatus.DROPPED
        if result is not None:
            self.result = result

    @property
    def done(self) -> bool:
        return self.status in (EntryStatus.DELIVERED, EntryStatus.FAILED, EntryStatus.DROPPED)


class NotifierStats:
    """Thread-safe delivery counters.

    Attributes:
        queued: Reports accepted by the delivery queue.
        delivered: Reports accepted by the backend.
        failed: Dead letters (retries exhausted or permanent failure).
        dropped: Reports evicted on overflow, rejected, or abandoned at shutdown.
        discarded: Reports discarded by filters.
        malformed: Faults that could not be normalized.
    """

    _fields = ("queued", "delivered", "failed", "dropped", "discarded", "malformed")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts: Dict[str, int] = {name: 0 for name in self._fields}

    def increment(self, name: str, amount: int = 1) -> None:
        with self._lock:
            self._counts[name] += amount

    def __getattr__(self, name: str) -> int:
        if name in NotifierStats._fields:
            with self._lock:
                return self._counts[name]
        raise AttributeError(name)

    def snapshot(self) -> Dict[str, int]:
        """Return a consistent copy of all counters."""
        with self._lock:
            return dict(self._counts)

    def __repr__(self) -> str:
        return f"NotifierStats({self.snapshot()})"
