"""Unit tests for the exception hierarchy."""

import pytest

from web_errnotifier.exceptions import (
    ConfigurationError,
    FilterError,
    MalformedInputError,
    PermanentTransportError,
    QueueFullError,
    TransientTransportError,
    TransportError,
    WebErrNotifierError,
)


class TestWebErrNotifierError:
    """Tests for the base exception."""

    def test_str_without_cause(self) -> None:
        """Test string form is the message alone."""
        assert str(WebErrNotifierError("boom")) == "boom"

    def test_str_with_cause(self) -> None:
        """Test string form includes the cause."""
        error = WebErrNotifierError("boom", cause=ValueError("bad value"))
        assert str(error) == "boom (caused by: bad value)"
        assert isinstance(error.cause, ValueError)

    @pytest.mark.parametrize(
        "exc_cls",
        [ConfigurationError, MalformedInputError, FilterError, QueueFullError, TransportError],
    )
    def test_subclasses_share_base(self, exc_cls: type) -> None:
        """Test every package error can be caught with the base class."""
        with pytest.raises(WebErrNotifierError):
            raise exc_cls("failure")


class TestFilterError:
    """Tests for FilterError."""

    def test_keeps_filter_name(self) -> None:
        """Test the failing filter's name is kept."""
        error = FilterError("failed", filter_name="KeysFilter", cause=KeyError("x"))
        assert error.filter_name == "KeysFilter"
        assert "caused by" in str(error)


class TestTransportErrors:
    """Tests for transport error classification."""

    def test_transient_flag(self) -> None:
        """Test transient and permanent errors are told apart."""
        assert TransientTransportError("x").transient is True
        assert PermanentTransportError("x").transient is False
        assert TransportError("x").transient is False

    def test_status_code(self) -> None:
        """Test the HTTP status is kept."""
        error = TransientTransportError("server down", status_code=503)
        assert error.status_code == 503
        assert isinstance(error, TransportError)
