"""Report sender with retry and exponential backoff."""

import logging
import random
import threading
import time
from typing import Optional, TYPE_CHECKING

from .exceptions import TransportError
from .models import DeliveryResult, FailureCause
from .transports.base import classify_status

if TYPE_CHECKING:
    from .config import NotifierConfig
    from .models import Report
    from .transports import BaseTransport

logger = logging.getLogger(__name__)

# Jitter factor bounds applied to every backoff delay
JITTER_MIN = 0.8
JITTER_MAX = 1.2


class Sender:
    """Delivers reports through a transport, retrying transient failures.

    Makes up to ``1 + max_retries`` attempts. Permanent failures (auth,
    malformed payload) are returned after the first attempt. Transient
    failures (network, rate limit, server error, attempt timeout) are
    retried after an exponential backoff with jitter.

    Attributes:
        transport: The transport performing single attempts.
        max_retries: Retries after the first failed attempt.
        backoff_base: Delay before the first retry in seconds.
        backoff_max: Cap on a single delay before jitter.
        timeout: Timeout of one attempt in seconds.

    Example:
        sender = Sender(HttpTransport(endpoint=url, api_key=key), max_retries=3)
        result = sender.send(report)
    """

    def __init__(
        self,
        transport: "BaseTransport",
        max_retries: int = 3,
        backoff_base: float = 0.1,
        backoff_max: float = 2.0,
        timeout: float = 5.0,
    ) -> None:
        self.transport = transport
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.timeout = timeout

    @classmethod
    def from_config(cls, transport: "BaseTransport", config: "NotifierConfig") -> "Sender":
        return cls(
            transport,
            max_retries=config.max_retries,
            backoff_base=config.backoff_base_seconds,
            backoff_max=config.backoff_max_seconds,
            timeout=config.timeout_seconds,
        )

    def backoff_delay(self, retry: int, retry_after: Optional[float] = None) -> float:
        """Calculate the delay before a retry.

        The base delay doubles on each retry (base, 2*base, 4*base, ...),
        is raised to ``retry_after`` when the backend asked for it, is
        capped at backoff_max, then multiplied by a jitter factor between
        0.8 and 1.2.

        Args:
            retry: Zero-based retry index.
            retry_after: Delay requested by the backend, in seconds.

        Returns:
            Delay in seconds.
        """
        delay = self.backoff_base * (2 ** retry)
        if retry_after is not None:
            delay = max(delay, retry_after)
        capped = min(delay, self.backoff_max)
        return capped * random.uniform(JITTER_MIN, JITTER_MAX)

    def send(
        self,
        report: "Report",
        deadline: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
    ) -> DeliveryResult:
        """Deliver a report, retrying transient failures.

        Args:
            report: The report to deliver.
            deadline: Optional ``time.monotonic()`` value after which no
                further retry is started.
            cancel: Optional event; once set, no further attempt is made
                and the result is ABANDONED.

        Returns:
            The final DeliveryResult, with ``attempts`` set.
        """
        attempts = 0
        while True:
            if cancel is not None and cancel.is_set():
                return self._abandoned(report, attempts)

            attempts += 1
            result = self._attempt(report, deadline)

            if result.success:
                return result.with_attempts(attempts)

            if not result.transient:
                logger.warning(
                    f"Report {report.id} rejected permanently "
                    f"({result.cause.value if result.cause else 'unknown'}): {result.error}"
                )
                return result.with_attempts(attempts)

            retry = attempts - 1
            if retry >= self.max_retries:
                logger.error(
                    f"Report {report.id} failed after {attempts} attempts: {result.error}"
                )
                return result.with_attempts(attempts)

            delay = self.backoff_delay(retry, result.retry_after)
            if deadline is not None and time.monotonic() + delay >= deadline:
                logger.warning(
                    f"Report {report.id} out of time after {attempts} attempts: {result.error}"
                )
                return result.with_attempts(attempts)

            logger.warning(
                f"Send failed (attempt {attempts}/{self.max_retries + 1}): "
                f"{result.error}; retrying in {delay:.3f}s"
            )
            if cancel is not None:
                if cancel.wait(delay):
                    return self._abandoned(report, attempts)
            else:
                time.sleep(delay)

    def _attempt(self, report: "Report", deadline: Optional[float]) -> DeliveryResult:
        timeout = self.timeout
        if deadline is not None:
            timeout = max(0.001, min(timeout, deadline - time.monotonic()))

        try:
            result = self.transport.deliver(report, timeout=timeout)
        except TransportError as e:
            cause = classify_status(e.status_code).cause if e.status_code is not None else None
            if cause is None:
                cause = FailureCause.NETWORK if e.transient else FailureCause.MALFORMED_PAYLOAD
            return DeliveryResult.failed(cause, error=str(e), status_code=e.status_code)
        except Exception as e:
            logger.error(f"Transport raised unexpectedly for report {report.id}: {e}", exc_info=True)
            return DeliveryResult.failed(FailureCause.NETWORK, error=str(e))

        if not isinstance(result, DeliveryResult):
            return DeliveryResult.failed(
                FailureCause.NETWORK,
                error=f"Transport returned {type(result).__name__}, expected DeliveryResult",
            )
        return result

    def _abandoned(self, report: "Report", attempts: int) -> DeliveryResult:
        logger.warning(f"Delivery of report {report.id} abandoned at shutdown")
        return DeliveryResult.failed(
            FailureCause.ABANDONED, error="Delivery abandoned at shutdown"
        ).with_attempts(attempts)
