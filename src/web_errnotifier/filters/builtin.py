"""General-purpose report filters."""

import logging
from typing import Any, Iterable, List, Mapping, Optional, Pattern, TYPE_CHECKING, Union

from . import register_filter
from .base import BaseFilter

if TYPE_CHECKING:
    from ..models import Report

logger = logging.getLogger(__name__)

FILTERED = "[Filtered]"

# Context keys redacted by KeysFilter when no patterns are given
DEFAULT_SENSITIVE_KEYS = (
    "password",
    "passwd",
    "secret",
    "token",
    "api_key",
    "apikey",
    "api-key",
    "authorization",
    "cookie",
)


@register_filter("keys")
class KeysFilter(BaseFilter):
    """Redact context values whose key matches a pattern.

    String patterns match as case-insensitive substrings; compiled regular
    expressions are searched. Performance attachment attributes are
    redacted the same way.

    Example:
        KeysFilter(patterns=["password", re.compile(r"^x-internal-")])
    """

    def __init__(
        self,
        patterns: Optional[Iterable[Union[str, Pattern[str]]]] = None,
        replacement: str = FILTERED,
        **kwargs: Any,
    ) -> None:
        patterns = list(patterns) if patterns is not None else list(DEFAULT_SENSITIVE_KEYS)
        super().__init__(patterns=patterns, replacement=replacement, **kwargs)
        self.replacement = replacement
        self._substrings: List[str] = []
        self._regexes: List[Pattern[str]] = []
        for pattern in patterns:
            if isinstance(pattern, str):
                self._substrings.append(pattern.lower())
            else:
                self._regexes.append(pattern)

    def matches(self, key: str) -> bool:
        key_lower = key.lower()
        if any(s in key_lower for s in self._substrings):
            return True
        return any(regex.search(key) for regex in self._regexes)

    def apply(self, report: "Report") -> "Optional[Report]":
        context = self._redact(report.context)
        performance = report.performance
        if performance is not None and performance.attributes:
            attributes = self._redact(performance.attributes)
            if attributes is not None:
                performance = performance.replace(attributes=attributes)

        if context is None and performance is report.performance:
            return report

        changes: dict = {"performance": performance}
        if context is not None:
            changes["context"] = context
        return report.replace(**changes)

    def _redact(self, values: Mapping[str, str]) -> Optional[dict]:
        redacted = {
            key: self.replacement if self.matches(key) else value
            for key, value in values.items()
        }
        if redacted == dict(values):
            return None
        return redacted


@register_filter("ignore")
class IgnoreFilter(BaseFilter):
    """Discard reports for the given fault types.

    A type matches by exact name or by unqualified class name, so both
    "ValueError" and "myapp.errors.RetryLater" can be listed.
    """

    def __init__(self, fault_types: Iterable[Union[str, type]] = (), **kwargs: Any) -> None:
        names = [t.__qualname__ if isinstance(t, type) else str(t) for t in fault_types]
        super().__init__(fault_types=names, **kwargs)
        self.fault_types = frozenset(names)

    def apply(self, report: "Report") -> "Optional[Report]":
        short_name = report.fault_type.rsplit(".", 1)[-1]
        if report.fault_type in self.fault_types or short_name in self.fault_types:
            return None
        return report


@register_filter("context")
class ContextFilter(BaseFilter):
    """Add static attributes to every report.

    Attributes already present on the report are kept as they are.
    """

    def __init__(self, attributes: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> None:
        attributes = {str(k): str(v) for k, v in (attributes or {}).items()}
        super().__init__(attributes=attributes, **kwargs)
        self.attributes = attributes

    def apply(self, report: "Report") -> "Optional[Report]":
        missing = {k: v for k, v in self.attributes.items() if k not in report.context}
        if not missing:
            return report
        return report.with_context(**missing)
