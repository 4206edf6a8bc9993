"""Unit tests for FrameworkRegistry and the middleware base class."""

from typing import Any, Generator, List
from unittest.mock import Mock

import pytest

from web_errnotifier.core import BaseAdapter, BaseMiddleware, FrameworkRegistry
from web_errnotifier.core.base_middleware import MAX_CONTEXT_VALUE_SIZE
from web_errnotifier.exceptions import ConfigurationError


class DummyApp:
    """Application type handled by the test adapter."""


class DummyMiddleware(BaseMiddleware):
    """Middleware recording the apps it was installed on."""

    def __init__(self, notifier: Any) -> None:
        super().__init__(notifier)
        self.installed: List[Any] = []

    def install(self, app: Any) -> None:
        self.installed.append(app)


class DummyAdapter(BaseAdapter[DummyApp]):
    """Adapter for DummyApp."""

    def create_middleware(self, app: DummyApp, notifier: Any) -> BaseMiddleware:
        middleware = DummyMiddleware(notifier)
        middleware.install(app)
        return middleware

    def can_handle(self, app: Any) -> bool:
        return isinstance(app, DummyApp)

    def get_framework_name(self) -> str:
        return "dummy"


class TestFrameworkRegistry:
    """Tests for FrameworkRegistry class."""

    @pytest.fixture(autouse=True)
    def register_dummy(self) -> Generator[None, None, None]:
        """Register the dummy adapter for each test."""
        FrameworkRegistry.register("dummy")(DummyAdapter)
        yield
        FrameworkRegistry.unregister("dummy")

    def test_register_and_get(self) -> None:
        """Test registered adapters can be looked up by name."""
        assert FrameworkRegistry.is_registered("dummy")
        assert FrameworkRegistry.get("dummy") is DummyAdapter
        assert "dummy" in FrameworkRegistry.list_frameworks()

    def test_get_unknown_raises(self) -> None:
        """Test unknown framework names raise KeyError."""
        with pytest.raises(KeyError, match="No adapter registered"):
            FrameworkRegistry.get("bottle")

    def test_instances_are_cached(self) -> None:
        """Test get_instance returns the same adapter object."""
        first = FrameworkRegistry.get_instance("dummy")
        assert FrameworkRegistry.get_instance("dummy") is first

    def test_auto_detect(self) -> None:
        """Test auto_detect picks the adapter that can handle the app."""
        adapter = FrameworkRegistry.auto_detect(DummyApp())

        assert isinstance(adapter, DummyAdapter)
        assert adapter.get_framework_name() == "dummy"

    def test_auto_detect_unknown_app(self) -> None:
        """Test auto_detect returns None for unsupported objects."""
        assert FrameworkRegistry.auto_detect(object()) is None

    def test_auto_detect_skips_broken_adapter(self) -> None:
        """Test an adapter raising in can_handle does not stop detection."""

        class BrokenAdapter(DummyAdapter):
            def can_handle(self, app: Any) -> bool:
                raise RuntimeError("broken")

        FrameworkRegistry.register("broken")(BrokenAdapter)
        try:
            adapter = FrameworkRegistry.auto_detect(DummyApp())
        finally:
            FrameworkRegistry.unregister("broken")

        assert isinstance(adapter, DummyAdapter)
        assert not isinstance(adapter, BrokenAdapter)

    def test_reregister_replaces_cached_instance(self) -> None:
        """Test registering a name again drops the cached adapter."""
        first = FrameworkRegistry.get_instance("dummy")

        class ReplacementAdapter(DummyAdapter):
            pass

        FrameworkRegistry.register("dummy")(ReplacementAdapter)

        assert isinstance(FrameworkRegistry.get_instance("dummy"), ReplacementAdapter)
        assert FrameworkRegistry.get_instance("dummy") is not first

    def test_install_wires_notifier(self) -> None:
        """Test install creates middleware bound to the notifier and app."""
        app = DummyApp()
        notifier = Mock()

        middleware = FrameworkRegistry.install(app, notifier)

        assert isinstance(middleware, DummyMiddleware)
        assert middleware.notifier is notifier
        assert middleware.installed == [app]

    def test_install_unknown_app_raises(self) -> None:
        """Test install rejects applications no adapter handles."""
        with pytest.raises(ConfigurationError, match="Could not detect framework"):
            FrameworkRegistry.install(object(), Mock())

    def test_unregister(self) -> None:
        """Test unregistering removes the adapter."""
        FrameworkRegistry.unregister("dummy")
        assert not FrameworkRegistry.is_registered("dummy")


class TestBaseMiddleware:
    """Tests for the shared middleware behavior."""

    def setup_method(self) -> None:
        """Set up test fixtures."""
        self.notifier = Mock()
        self.middleware = DummyMiddleware(self.notifier)

    def test_report_exception_tags_request(self) -> None:
        """Test exceptions are queued with the request tag."""
        exc = ValueError("bad input")
        self.middleware.report_exception(exc, {"path": "/orders"})

        self.notifier.notify.assert_called_once_with(
            exc, context={"path": "/orders"}, tag="request"
        )

    def test_report_exception_never_raises(self) -> None:
        """Test notifier errors do not reach the application."""
        self.notifier.notify.side_effect = RuntimeError("notifier broken")
        self.middleware.report_exception(ValueError("x"), {})

    def test_clean_context(self) -> None:
        """Test empty values are dropped and long values truncated."""
        context = self.middleware._clean_context(
            {"path": "/a", "endpoint": None, "query_string": "", "body": "x" * 5000}
        )

        assert set(context) == {"path", "body"}
        assert context["body"].endswith("... [truncated]")
        assert len(context["body"]) == MAX_CONTEXT_VALUE_SIZE + len("... [truncated]")

    def test_shutdown_delegates(self) -> None:
        """Test shutdown drains the notifier."""
        self.middleware.shutdown(2.0)
        self.notifier.shutdown.assert_called_once_with(2.0)
