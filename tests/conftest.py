"""Shared fixtures for web-errnotifier tests."""

import threading
import time
from typing import Any, Callable, List, Optional

import pytest

import web_errnotifier
from web_errnotifier import config as config_module
from web_errnotifier.config import NotifierConfig
from web_errnotifier.models import DeliveryResult, Report
from web_errnotifier.notifier import get_default_notifier, set_default_notifier
from web_errnotifier.transports import BaseTransport


class FakeTransport(BaseTransport):
    """Transport replaying scripted outcomes.

    Each outcome is a DeliveryResult to return, an exception to raise, or
    a callable taking the report and returning either. Once the script
    runs out every attempt succeeds.
    """

    def __init__(self, outcomes: Optional[List[Any]] = None) -> None:
        super().__init__()
        self.outcomes = list(outcomes or [])
        self.reports: List[Report] = []
        self.timeouts: List[Optional[float]] = []
        self.closed = False
        self._lock = threading.Lock()

    def deliver(self, report: Report, timeout: Optional[float] = None) -> DeliveryResult:
        with self._lock:
            self.reports.append(report)
            self.timeouts.append(timeout)
            outcome = self.outcomes.pop(0) if self.outcomes else DeliveryResult.delivered(200)
        if callable(outcome):
            outcome = outcome(report)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def validate_config(self) -> bool:
        return True

    def close(self) -> None:
        self.closed = True

    @property
    def calls(self) -> int:
        with self._lock:
            return len(self.reports)


@pytest.fixture
def make_transport() -> Callable[..., FakeTransport]:
    """Factory for scripted fake transports."""
    return FakeTransport


@pytest.fixture
def fast_config(tmp_path: Any) -> NotifierConfig:
    """Configuration with millisecond backoff."""
    return NotifierConfig(
        backoff_base_seconds=0.001,
        backoff_max_seconds=0.01,
        log_path=str(tmp_path),
    )


@pytest.fixture
def wait_until() -> Callable[..., bool]:
    """Poll a predicate until it holds or a timeout passes."""

    def wait(predicate: Callable[[], bool], timeout: float = 3.0) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(0.005)
        return predicate()

    return wait


@pytest.fixture(autouse=True)
def reset_globals(monkeypatch: pytest.MonkeyPatch) -> Any:
    """Isolate the process-wide notifier, config and file logging."""
    monkeypatch.setattr(config_module, "_default_config", None)
    monkeypatch.setattr(web_errnotifier, "_file_handler_initialized", True)
    set_default_notifier(None)
    yield
    notifier = get_default_notifier()
    if notifier is not None and not notifier.is_shutdown:
        notifier.shutdown(timeout=1.0)
    set_default_notifier(None)
