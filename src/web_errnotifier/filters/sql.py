"""SQL statement redaction.

Database adapters quote literals differently, so the set of literal
patterns is chosen per dialect. Hosts can register pattern sets for
adapters not covered here with :func:`register_sql_dialect`.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Pattern, TYPE_CHECKING, Tuple

from . import register_filter
from .base import BaseFilter

if TYPE_CHECKING:
    from ..models import Report

logger = logging.getLogger(__name__)

REPLACEMENT = "?"

# Statement used when redaction leaves an unbalanced quote behind
UNFILTERED_MARKER = "[statement could not be filtered]"

# Attachment kind whose statement is rewritten
SQL_KIND = "sql"

# Literal patterns, keyed by feature name. Groups are non-capturing or named so
# the patterns can be joined into one alternation.
LITERAL_PATTERNS: Dict[str, str] = {
    "single_quotes": r"'(?:[^']|'')*?(?:\\'.*|'(?!'))",
    "double_quotes": r'"(?:[^"]|"")*?(?:\\".*|"(?!"))',
    "dollar_quotes": r"(?P<dollar_tag>\$(?!\d)[^$]*?\$).*?(?:(?P=dollar_tag)|$)",
    "uuids": r"\{?(?:[0-9a-fA-F]-*){32}\}?",
    "numeric_literals": r"\b-?(?:[0-9]+\.)?[0-9]+(?:[eE][+-]?[0-9]+)?\b",
    "boolean_literals": r"(?i:\b(?:true|false|null)\b)",
    "hexadecimal_literals": r"0x[0-9a-fA-F]+",
    "comments": r"(?:#|--).*?(?=\r|\n|$)",
    "multi_line_comments": r"/\*(?:[^/]|/[^*])*?(?:\*/|/\*.*)",
}


@dataclass(frozen=True)
class SqlDialect:
    """Literal patterns and leftover-quote check for one database adapter.

    Attributes:
        name: Dialect name.
        pattern: Alternation of all literal patterns.
        unmatched: Pattern that must not match after redaction, if any.
    """

    name: str
    pattern: Pattern[str]
    unmatched: Optional[Pattern[str]] = None


_dialects: Dict[str, SqlDialect] = {}
_aliases: Dict[str, str] = {}


def register_sql_dialect(
    name: str,
    features: Iterable[str] = (),
    patterns: Iterable[str] = (),
    unmatched: Optional[str] = None,
    aliases: Iterable[str] = (),
) -> SqlDialect:
    """Register the literal patterns for a database adapter.

    Args:
        name: Dialect name (e.g. "postgresql").
        features: Names from LITERAL_PATTERNS to enable.
        patterns: Extra regular expressions matching literals.
        unmatched: Regex that signals unbalanced quoting after redaction.
        aliases: Other adapter names resolving to this dialect.

    Returns:
        The registered dialect.

    Raises:
        KeyError: If a feature name is unknown.
        ValueError: If no patterns are given.
    """
    sources = [LITERAL_PATTERNS[feature] for feature in features]
    sources.extend(patterns)
    if not sources:
        raise ValueError(f"SQL dialect {name} needs at least one literal pattern")

    dialect = SqlDialect(
        name=name,
        pattern=re.compile("|".join(f"(?:{source})" for source in sources)),
        unmatched=re.compile(unmatched) if unmatched else None,
    )
    _dialects[name] = dialect
    for alias in aliases:
        _aliases[alias] = name
    logger.debug(f"Registered SQL dialect: {name}")
    return dialect


def get_sql_dialect(name: str) -> SqlDialect:
    """Resolve a dialect by name or alias.

    Unknown adapters fall back to the "default" dialect, which enables
    every literal pattern.
    """
    key = _aliases.get(name.lower(), name.lower())
    dialect = _dialects.get(key)
    if dialect is None:
        logger.warning(f"Unknown SQL dialect '{name}', using default patterns")
        dialect = _dialects["default"]
    return dialect


register_sql_dialect("default", features=LITERAL_PATTERNS.keys())
register_sql_dialect(
    "postgresql",
    features=(
        "single_quotes",
        "dollar_quotes",
        "uuids",
        "numeric_literals",
        "boolean_literals",
        "comments",
        "multi_line_comments",
    ),
    unmatched=r"'|/\*|\*/|\$(?!\?)",
    aliases=("postgres", "postgis", "psycopg", "psycopg2", "asyncpg"),
)
register_sql_dialect(
    "mysql",
    features=(
        "single_quotes",
        "double_quotes",
        "numeric_literals",
        "boolean_literals",
        "hexadecimal_literals",
        "comments",
        "multi_line_comments",
    ),
    unmatched=r"'|\"|/\*|\*/",
    aliases=("mysql2", "mariadb", "pymysql", "mysqldb"),
)
register_sql_dialect(
    "sqlite",
    features=(
        "single_quotes",
        "numeric_literals",
        "boolean_literals",
        "hexadecimal_literals",
        "comments",
        "multi_line_comments",
    ),
    unmatched=r"'|/\*|\*/",
    aliases=("sqlite3", "pysqlite"),
)


@register_filter("sql")
class SqlFilter(BaseFilter):
    """Replace literal values in SQL statements with placeholders.

    Rewrites the statement of a report's "sql" performance attachment and
    a ``sql`` context attribute. Job and custom attachments are left
    alone; reports without either pass through.

    Example:
        notifier.add_performance_filter(SqlFilter("postgresql"))
    """

    def __init__(self, dialect: str = "default", **kwargs: Any) -> None:
        super().__init__(dialect=dialect, **kwargs)
        self.dialect = get_sql_dialect(dialect)

    def filter_statement(self, statement: str) -> str:
        """Redact literals from one statement.

        Args:
            statement: Raw SQL text.

        Returns:
            The statement with literals replaced, or UNFILTERED_MARKER if
            quoting was left unbalanced.
        """
        filtered = self.dialect.pattern.sub(REPLACEMENT, statement)
        if self.dialect.unmatched is not None and self.dialect.unmatched.search(filtered):
            logger.debug(f"SQL statement left unbalanced after {self.dialect.name} redaction")
            return UNFILTERED_MARKER
        return filtered

    def apply(self, report: "Report") -> "Optional[Report]":
        changes: Dict[str, Any] = {}

        performance = report.performance
        if performance is not None and performance.kind == SQL_KIND and performance.statement:
            changes["performance"] = performance.replace(
                statement=self.filter_statement(performance.statement)
            )

        sql = report.context.get("sql")
        if sql:
            context = dict(report.context)
            context["sql"] = self.filter_statement(sql)
            changes["context"] = context

        if not changes:
            return report
        return report.replace(**changes)


def known_dialects() -> Tuple[str, ...]:
    return tuple(_dialects)
