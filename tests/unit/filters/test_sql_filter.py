"""Unit tests for SQL statement redaction."""

from typing import Any

import pytest

from web_errnotifier.filters.sql import (
    UNFILTERED_MARKER,
    SqlFilter,
    get_sql_dialect,
    known_dialects,
    register_sql_dialect,
)
from web_errnotifier.models import PerformanceAttachment, Report
from web_errnotifier.notifier import Notifier
from web_errnotifier.transports.local import LocalTransport


class TestSqlFilterStatements:
    """Tests for literal redaction per dialect."""

    @pytest.mark.parametrize("dialect", ["default", "postgresql", "mysql", "sqlite"])
    def test_strings_and_numbers(self, dialect: str) -> None:
        """Test quoted strings and numbers are replaced."""
        sql_filter = SqlFilter(dialect=dialect)
        statement = "SELECT * FROM users WHERE name = 'bob' AND age = 42"
        assert sql_filter.filter_statement(statement) == (
            "SELECT * FROM users WHERE name = ? AND age = ?"
        )

    def test_identifiers_with_digits_kept(self) -> None:
        """Test digits inside identifiers are not literals."""
        sql_filter = SqlFilter(dialect="postgresql")
        assert sql_filter.filter_statement("SELECT col1 FROM t2") == "SELECT col1 FROM t2"

    def test_booleans(self) -> None:
        """Test boolean and null literals are replaced."""
        sql_filter = SqlFilter(dialect="sqlite")
        assert sql_filter.filter_statement("UPDATE t SET a = TRUE WHERE b IS null") == (
            "UPDATE t SET a = ? WHERE b IS ?"
        )

    def test_postgres_dollar_quotes(self) -> None:
        """Test dollar-quoted strings are replaced for PostgreSQL."""
        sql_filter = SqlFilter(dialect="postgresql")
        assert sql_filter.filter_statement("SELECT $$top secret$$") == "SELECT ?"

    def test_mysql_double_quotes(self) -> None:
        """Test double-quoted strings are replaced for MySQL."""
        sql_filter = SqlFilter(dialect="mysql")
        assert sql_filter.filter_statement('SELECT "secret"') == "SELECT ?"

    @pytest.mark.parametrize("dialect", ["postgresql", "mysql", "sqlite"])
    def test_unbalanced_quote_gives_marker(self, dialect: str) -> None:
        """Test statements with leftover quotes are not sent."""
        sql_filter = SqlFilter(dialect=dialect)
        assert sql_filter.filter_statement("SELECT * FROM t WHERE a = 'oops") == UNFILTERED_MARKER


class TestSqlDialects:
    """Tests for the dialect registry."""

    def test_aliases(self) -> None:
        """Test adapter names resolve to dialects."""
        assert get_sql_dialect("psycopg2").name == "postgresql"
        assert get_sql_dialect("MariaDB").name == "mysql"
        assert get_sql_dialect("sqlite3").name == "sqlite"

    def test_unknown_falls_back_to_default(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test unknown adapters use every pattern."""
        assert get_sql_dialect("oracle").name == "default"
        assert "Unknown SQL dialect" in caplog.text

    def test_register_dialect(self) -> None:
        """Test hosts can add dialects."""
        register_sql_dialect(
            "test_clickhouse",
            features=("single_quotes", "numeric_literals"),
            aliases=("test_ch",),
        )
        assert "test_clickhouse" in known_dialects()
        sql_filter = SqlFilter(dialect="test_ch")
        assert sql_filter.filter_statement("SELECT 'a', 1") == "SELECT ?, ?"

    def test_register_without_patterns(self) -> None:
        """Test a dialect needs at least one pattern."""
        with pytest.raises(ValueError):
            register_sql_dialect("test_empty")


class TestSqlFilterApply:
    """Tests for report rewriting."""

    def setup_method(self) -> None:
        """Set up test fixtures."""
        self.filter = SqlFilter(dialect="postgresql")

    def test_rewrites_performance_statement(self) -> None:
        """Test the attachment statement is redacted."""
        report = Report.create(
            fault_type="SlowQuery",
            message="slow",
            tag="sql",
            performance=PerformanceAttachment(
                kind="sql", statement="SELECT * FROM t WHERE id = 5", duration_ms=250.0
            ),
        )

        result = self.filter.apply(report)

        assert result.performance.statement == "SELECT * FROM t WHERE id = ?"
        assert result.performance.duration_ms == 250.0
        assert report.performance.statement.endswith("5")

    def test_rewrites_sql_context(self) -> None:
        """Test a sql context attribute is redacted."""
        report = Report.create(fault_type="E", message="m", context={"sql": "DELETE FROM t WHERE a = 'x'"})
        result = self.filter.apply(report)
        assert result.context["sql"] == "DELETE FROM t WHERE a = ?"

    def test_passes_reports_without_sql(self) -> None:
        """Test unrelated reports are returned unchanged."""
        report = Report.create(fault_type="E", message="m")
        assert self.filter.apply(report) is report

    def test_other_attachment_kinds_untouched(self) -> None:
        """Test job and custom attachments keep their statement."""
        report = Report.create(
            fault_type="JobFailed",
            message="export failed",
            tag="job",
            performance=PerformanceAttachment(kind="job", statement="export_orders 2024 batch 7"),
        )

        assert self.filter.apply(report) is report

    def test_performance_filter_skips_job_reports(self, fast_config: Any) -> None:
        """Test a registered performance filter leaves job names readable."""
        notifier = Notifier(fast_config, transport=LocalTransport(output_dir=fast_config.log_path))
        notifier.add_performance_filter(SqlFilter("postgresql"))

        job = notifier.build_report(
            RuntimeError("boom"),
            tag="job",
            performance={"statement": "export_orders 2024 batch 7"},
        )
        query = notifier.build_report(
            RuntimeError("boom"),
            tag="sql",
            performance={"statement": "SELECT * FROM orders WHERE year = 2024"},
        )

        assert job.performance.statement == "export_orders 2024 batch 7"
        assert query.performance.statement == "SELECT * FROM orders WHERE year = ?"
