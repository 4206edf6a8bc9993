"""HTTP transport for error reports.

This module provides a transport that POSTs reports as JSON to the
configured reporting backend using httpx.
"""

import logging
import threading
from typing import Any, Dict, Optional, TYPE_CHECKING

import httpx

from .. import __version__
from ..models import DeliveryResult, FailureCause
from . import register_transport
from .base import BaseTransport, classify_status

if TYPE_CHECKING:
    from ..models import Report

logger = logging.getLogger(__name__)

USER_AGENT = f"web-errnotifier/{__version__}"


@register_transport("http")
class HttpTransport(BaseTransport):
    """Transport that sends reports to an HTTP(S) endpoint.

    One POST per attempt, JSON body, bearer-token authentication. The
    response status decides the DeliveryResult (see classify_status).
    Timeouts and connection errors are transient network failures.

    Attributes:
        endpoint: The backend URL.
        api_key: The API credential.
        timeout: Default timeout of one attempt in seconds.

    Example:
        transport = HttpTransport(
            endpoint="https://errors.example.com/api/v1/reports",
            api_key="xxx",
        )
        result = transport.deliver(report)
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 5.0,
        client: Optional[httpx.Client] = None,
        **kwargs: Any,
    ) -> None:
        """Initialize the HTTP transport.

        Args:
            endpoint: The backend URL.
            api_key: The API credential.
            timeout: Default timeout of one attempt in seconds.
            client: Optional pre-built httpx client (e.g. with a mock transport).
            **kwargs: Additional configuration options.
        """
        super().__init__(endpoint=endpoint, timeout=timeout, **kwargs)
        self.endpoint = endpoint or ""
        self.api_key = api_key or ""
        self.timeout = timeout
        self._client = client
        self._lock = threading.Lock()

    @property
    def client(self) -> httpx.Client:
        """Get the httpx client (lazy loaded).

        httpx.Client is safe to share between worker threads.

        Returns:
            The httpx.Client instance.
        """
        if self._client is None:
            with self._lock:
                if self._client is None:
                    self._client = httpx.Client(timeout=self.timeout)
                    logger.debug(f"Created HTTP client for {self.endpoint}")
        return self._client

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def deliver(self, report: "Report", timeout: Optional[float] = None) -> DeliveryResult:
        """POST one report to the backend.

        Args:
            report: The report to deliver.
            timeout: Timeout for this attempt; defaults to the transport timeout.

        Returns:
            The classified outcome of the request.
        """
        try:
            response = self.client.post(
                self.endpoint,
                content=report.to_json().encode("utf-8"),
                headers=self._headers(),
                timeout=timeout if timeout is not None else self.timeout,
            )
        except httpx.TimeoutException as e:
            logger.debug(f"Report {report.id} timed out: {e}")
            return DeliveryResult.failed(FailureCause.NETWORK, error=f"Request timed out: {e}")
        except httpx.TransportError as e:
            logger.debug(f"Report {report.id} transport error: {e}")
            return DeliveryResult.failed(FailureCause.NETWORK, error=f"Transport error: {e}")

        result = classify_status(response.status_code, response.headers.get("Retry-After"))
        if result.success:
            logger.debug(f"Report {report.id} accepted with HTTP {response.status_code}")
        return result

    def validate_config(self) -> bool:
        """Validate the transport configuration.

        Returns:
            True if the endpoint is an http(s) URL, False otherwise.
        """
        return self.endpoint.startswith(("http://", "https://"))

    def close(self) -> None:
        """Close the underlying HTTP client."""
        with self._lock:
            if self._client is not None:
                self._client.close()
                self._client = None
