"""Unit tests for process-level hooks."""

import asyncio
import sys
import threading
from typing import Any, List
from unittest.mock import Mock

import pytest

from web_errnotifier import hooks
from web_errnotifier.hooks import install_exit_hook, report_exceptions
from web_errnotifier.models import PerformanceAttachment
from web_errnotifier.notifier import set_default_notifier


class TestReportExceptions:
    """Tests for the report_exceptions decorator."""

    def setup_method(self) -> None:
        """Set up test fixtures."""
        self.notifier = Mock()

    def test_reports_and_reraises(self) -> None:
        """Test failures are reported with the job name and re-raised."""

        @report_exceptions(self.notifier, name="billing.charge")
        def charge() -> None:
            raise ValueError("card declined")

        with pytest.raises(ValueError, match="card declined"):
            charge()

        self.notifier.notify.assert_called_once()
        args, kwargs = self.notifier.notify.call_args
        assert isinstance(args[0], ValueError)
        assert kwargs["tag"] == "job"
        assert kwargs["context"] == {"component": "job", "job": "billing.charge"}
        performance = kwargs["performance"]
        assert isinstance(performance, PerformanceAttachment)
        assert performance.kind == "job"
        assert performance.statement == "billing.charge"
        assert performance.duration_ms >= 0

    def test_success_not_reported(self) -> None:
        """Test return values pass through untouched."""

        @report_exceptions(self.notifier)
        def add(a: int, b: int) -> int:
            return a + b

        assert add(2, 3) == 5
        assert add.__name__ == "add"
        self.notifier.notify.assert_not_called()

    def test_default_name_is_qualname(self) -> None:
        """Test the function's qualified name is the default job name."""

        @report_exceptions(self.notifier, tag="cron")
        def nightly() -> None:
            raise RuntimeError("disk full")

        with pytest.raises(RuntimeError):
            nightly()

        kwargs = self.notifier.notify.call_args.kwargs
        assert kwargs["tag"] == "cron"
        assert kwargs["context"]["job"].endswith("nightly")

    def test_async_job(self) -> None:
        """Test coroutine functions are wrapped too."""

        @report_exceptions(self.notifier, name="sync_inventory")
        async def sync_inventory() -> None:
            await asyncio.sleep(0)
            raise KeyError("sku")

        with pytest.raises(KeyError):
            asyncio.run(sync_inventory())

        assert self.notifier.notify.call_args.kwargs["context"]["job"] == "sync_inventory"

    def test_uses_default_notifier_at_failure_time(self) -> None:
        """Test the default notifier is looked up when the job fails."""

        @report_exceptions()
        def job() -> None:
            raise ValueError("late binding")

        set_default_notifier(self.notifier)  # type: ignore[arg-type]
        try:
            with pytest.raises(ValueError):
                job()
        finally:
            set_default_notifier(None)

        self.notifier.notify.assert_called_once()

    def test_without_notifier(self) -> None:
        """Test jobs still fail normally when nothing is configured."""

        @report_exceptions()
        def job() -> None:
            raise ValueError("nobody listening")

        with pytest.raises(ValueError):
            job()


class TestInstallExitHook:
    """Tests for install_exit_hook."""

    @pytest.fixture(autouse=True)
    def isolate_hooks(self, monkeypatch: pytest.MonkeyPatch) -> Any:
        """Keep process hooks untouched by the tests."""
        self.previous_excepthook = Mock()
        self.previous_thread_hook = Mock()
        self.registered: List[Any] = []
        monkeypatch.setattr(hooks, "_exit_hook_installed", False)
        monkeypatch.setattr(sys, "excepthook", self.previous_excepthook)
        monkeypatch.setattr(threading, "excepthook", self.previous_thread_hook)
        monkeypatch.setattr(hooks.atexit, "register", self.registered.append)
        self.notifier = Mock()
        self.notifier.is_shutdown = False
        yield

    def test_uncaught_exception_sent_synchronously(self) -> None:
        """Test the top-level exception is delivered before exit."""
        assert install_exit_hook(self.notifier, timeout=3.0) is True

        exc = RuntimeError("fatal")
        sys.excepthook(RuntimeError, exc, None)

        self.notifier.notify_sync.assert_called_once_with(
            exc, context={"component": "excepthook"}, timeout=3.0
        )
        self.previous_excepthook.assert_called_once_with(RuntimeError, exc, None)

    def test_keyboard_interrupt_not_reported(self) -> None:
        """Test Ctrl-C is passed through unreported."""
        install_exit_hook(self.notifier)
        sys.excepthook(KeyboardInterrupt, KeyboardInterrupt(), None)

        self.notifier.notify_sync.assert_not_called()
        self.previous_excepthook.assert_called_once()

    def test_reporting_errors_do_not_hide_exception(self) -> None:
        """Test the previous hook runs even if reporting fails."""
        self.notifier.notify_sync.side_effect = RuntimeError("notifier broken")
        install_exit_hook(self.notifier)

        sys.excepthook(ValueError, ValueError("x"), None)

        self.previous_excepthook.assert_called_once()

    def test_thread_exceptions_queued(self) -> None:
        """Test exceptions ending a thread are reported asynchronously."""
        install_exit_hook(self.notifier)

        def worker() -> None:
            raise ValueError("thread failure")

        thread = threading.Thread(target=worker, name="importer")
        thread.start()
        thread.join()

        args, kwargs = self.notifier.notify.call_args
        assert isinstance(args[0], ValueError)
        assert kwargs["context"] == {"component": "thread", "thread": "importer"}
        self.previous_thread_hook.assert_called_once()

    def test_shutdown_registered_with_atexit(self) -> None:
        """Test the notifier is drained at exit."""
        install_exit_hook(self.notifier)

        assert len(self.registered) == 1
        self.registered[0]()
        self.notifier.shutdown.assert_called_once_with()

    def test_installs_once(self) -> None:
        """Test installing twice has no effect."""
        assert install_exit_hook(self.notifier) is True
        assert install_exit_hook(self.notifier) is False
        assert len(self.registered) == 1
