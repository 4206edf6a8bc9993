"""Unit tests for the module-level API."""

import logging
from pathlib import Path
from logging.handlers import RotatingFileHandler

import pytest

import web_errnotifier
from web_errnotifier import ConfigurationError, Notifier, NotifierConfig
from web_errnotifier.transports.local import REPORTS_DIRNAME


class TestUnconfigured:
    """Tests for calls made before configure()."""

    def test_notify_is_ignored(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test notify without a notifier warns and returns None."""
        assert web_errnotifier.get_notifier() is None
        assert web_errnotifier.notify(ValueError("bad")) is None
        assert web_errnotifier.notify_sync(ValueError("bad")) is None
        assert web_errnotifier.shutdown() is None
        assert "before configure()" in caplog.text

    def test_add_filter_requires_configure(self) -> None:
        """Test filters cannot be added without a notifier."""
        with pytest.raises(ConfigurationError):
            web_errnotifier.add_filter(lambda r: r)
        with pytest.raises(ConfigurationError):
            web_errnotifier.add_performance_filter(lambda r: r)


class TestConfigure:
    """Tests for configure() and the default notifier."""

    def test_configure_with_kwargs(self, tmp_path: Path) -> None:
        """Test configure builds the default notifier from overrides."""
        notifier = web_errnotifier.configure(transport="local", log_path=str(tmp_path))

        assert isinstance(notifier, Notifier)
        assert web_errnotifier.get_notifier() is notifier
        assert notifier.config.transport == "local"

    def test_configure_with_config(self, tmp_path: Path) -> None:
        """Test configure accepts a config object."""
        config = NotifierConfig(transport="local", log_path=str(tmp_path), environment="qa")
        notifier = web_errnotifier.configure(config)
        assert notifier.config is config

    def test_reconfigure_shuts_down_previous(self, tmp_path: Path) -> None:
        """Test configuring again replaces and shuts down the old notifier."""
        first = web_errnotifier.configure(transport="local", log_path=str(tmp_path))
        second = web_errnotifier.configure(transport="local", log_path=str(tmp_path))

        assert first.is_shutdown is True
        assert web_errnotifier.get_notifier() is second

    def test_invalid_configuration(self) -> None:
        """Test configuration errors surface from configure."""
        with pytest.raises(ConfigurationError):
            web_errnotifier.configure(endpoint="")

    def test_module_level_reporting(self, tmp_path: Path) -> None:
        """Test notify, notify_sync, filters and shutdown through the module."""
        web_errnotifier.configure(transport="local", log_path=str(tmp_path))
        web_errnotifier.add_filter(lambda r: r.with_context(service="billing"))

        result = web_errnotifier.notify_sync(RuntimeError("fatal"))
        web_errnotifier.notify(ValueError("later"))
        drain = web_errnotifier.shutdown(timeout=2.0)

        assert result.success is True
        assert drain.dropped == 0
        files = list((tmp_path / REPORTS_DIRNAME).glob("*.json"))
        assert len(files) == 2
        assert all('"service": "billing"' in f.read_text(encoding="utf-8") for f in files)


class TestFileLogging:
    """Tests for the rotating log file."""

    def test_configure_creates_log_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test configure installs a rotating file handler under log_path."""
        monkeypatch.setattr(web_errnotifier, "_file_handler_initialized", False)
        package_logger = logging.getLogger("web_errnotifier")
        before = list(package_logger.handlers)

        try:
            web_errnotifier.configure(transport="local", log_path=str(tmp_path))
            added = [h for h in package_logger.handlers if h not in before]

            assert len(added) == 1
            assert isinstance(added[0], RotatingFileHandler)
            assert (tmp_path / web_errnotifier.LOG_FILENAME).exists()
        finally:
            for handler in package_logger.handlers[:]:
                if handler not in before:
                    package_logger.removeHandler(handler)
                    handler.close()

    def test_unwritable_log_path_is_not_fatal(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test file logging failures are only logged."""
        monkeypatch.setattr(web_errnotifier, "_file_handler_initialized", False)
        blocker = tmp_path / "file"
        blocker.write_text("x")

        web_errnotifier._setup_file_logging(str(blocker / "logs"))

        assert web_errnotifier._file_handler_initialized is False
