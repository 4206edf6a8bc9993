"""Integration tests for FastAPI error reporting."""

import json
from pathlib import Path
from typing import Any, Dict, List

import pytest

pytest.importorskip("fastapi")

from fastapi import FastAPI
from fastapi.testclient import TestClient

import web_errnotifier
from web_errnotifier import ErrorReportingMiddleware
from web_errnotifier.frameworks.fastapi import FastAPIMiddleware
from web_errnotifier.transports.local import REPORTS_DIRNAME


class TestFastAPIIntegration:
    """Integration tests for FastAPI with ErrorReportingMiddleware."""

    @pytest.fixture(autouse=True)
    def setup_app(self, tmp_path: Path) -> None:
        """Build an app reporting to the local transport."""
        self.tmp_path = tmp_path
        self.app = FastAPI()

        @self.app.get("/")
        async def root() -> dict:
            return {"message": "Hello World"}

        @self.app.get("/orders/{order_id}")
        async def get_order(order_id: int) -> dict:
            raise LookupError(f"order {order_id} vanished")

        @self.app.post("/api/submit")
        async def submit_data(data: dict) -> dict:
            raise ValueError("rejected payload")

        self.middleware = ErrorReportingMiddleware(
            self.app,
            transport="local",
            log_path=str(tmp_path),
            environment="staging",
        )
        self.client = TestClient(self.app, raise_server_exceptions=False)

    def _saved_reports(self) -> List[Dict[str, Any]]:
        directory = self.tmp_path / REPORTS_DIRNAME
        return [json.loads(p.read_text(encoding="utf-8")) for p in sorted(directory.glob("*.json"))]

    def test_middleware_installed(self) -> None:
        """Test the FastAPI middleware is selected and becomes the default notifier."""
        assert isinstance(self.middleware.middleware, FastAPIMiddleware)
        assert web_errnotifier.get_notifier() is self.middleware.notifier

    def test_basic_request(self) -> None:
        """Test successful requests produce no reports."""
        response = self.client.get("/")
        result = self.middleware.shutdown(timeout=2.0)

        assert response.status_code == 200
        assert result.dropped == 0
        assert self._saved_reports() == []

    def test_exception_saved_as_report(self) -> None:
        """Test an unhandled exception is delivered with request context."""
        response = self.client.get("/orders/7")
        result = self.middleware.shutdown(timeout=2.0)

        assert response.status_code == 500
        assert result.dropped == 0
        assert self.middleware.notifier.stats.delivered == 1

        reports = self._saved_reports()
        assert len(reports) == 1
        report = reports[0]
        assert report["type"] == "LookupError"
        assert report["message"] == "order 7 vanished"
        assert report["tag"] == "request"
        assert report["context"]["path"] == "/orders/7"
        assert report["context"]["environment"] == "staging"
        assert report["backtrace"]

    def test_multiple_failures(self) -> None:
        """Test each failing request is reported."""
        self.client.get("/orders/1")
        self.client.post("/api/submit", json={"a": 1})
        self.client.get("/")
        self.middleware.shutdown(timeout=2.0)

        types = sorted(r["type"] for r in self._saved_reports())
        assert types == ["LookupError", "ValueError"]
        assert self.middleware.notifier.stats.delivered == 2
