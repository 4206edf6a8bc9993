"""Fault normalization.

Turns whatever a producer captured (an exception, a bare message, a
mapping from another system) into a canonical :class:`Report`.
"""

import logging
import traceback
from typing import Any, List, Mapping, Optional, Tuple

from .exceptions import MalformedInputError
from .models import BacktraceFrame, PerformanceAttachment, Report

logger = logging.getLogger(__name__)

# Type used for bare string messages
DEFAULT_FAULT_TYPE = "RuntimeError"


def build_report(
    fault: Any,
    context: Optional[Mapping[str, Any]] = None,
    tag: Optional[str] = None,
    performance: Optional[Any] = None,
    base_context: Optional[Mapping[str, Any]] = None,
) -> Report:
    """Build a report from a captured fault.

    Accepted faults:
        - exception instances (backtrace taken from ``__traceback__``)
        - non-empty strings (reported as ``RuntimeError``)
        - mappings with ``type``/``message`` or ``error_class``/``error_message``
          keys and an optional ``backtrace`` list
        - objects exposing ``type`` and ``message`` attributes

    Args:
        fault: The captured fault.
        context: Caller context attributes; values are converted to strings.
        tag: Optional producer tag (e.g. "sql", "job").
        performance: Optional PerformanceAttachment or mapping of its fields.
        base_context: Attributes merged underneath the caller context.

    Returns:
        The normalized Report. A missing backtrace yields an empty one.

    Raises:
        MalformedInputError: If no type/message pair can be extracted.
    """
    fault_type, message, backtrace = _extract(fault)

    merged = {}
    if base_context:
        merged.update({str(k): _stringify(v) for k, v in base_context.items()})
    if context:
        merged.update({str(k): _stringify(v) for k, v in context.items()})

    return Report.create(
        fault_type=fault_type,
        message=message,
        backtrace=backtrace,
        context=merged,
        tag=tag,
        performance=_build_performance(performance, tag),
    )


def _extract(fault: Any) -> Tuple[str, str, Tuple[BacktraceFrame, ...]]:
    if fault is None:
        raise MalformedInputError("Cannot build a report from None")

    if isinstance(fault, BaseException):
        return _fault_type_name(type(fault)), str(fault), _frames_from_traceback(fault)

    if isinstance(fault, str):
        if not fault.strip():
            raise MalformedInputError("Cannot build a report from an empty message")
        return DEFAULT_FAULT_TYPE, fault, ()

    if isinstance(fault, Mapping):
        fault_type = fault.get("type") or fault.get("error_class")
        message = fault.get("message", fault.get("error_message"))
        if not fault_type or message is None:
            raise MalformedInputError(
                f"Fault mapping needs 'type' and 'message' keys, got {sorted(map(str, fault))}"
            )
        return str(fault_type), str(message), _frames_from_mapping(fault.get("backtrace"))

    fault_type = getattr(fault, "type", None)
    message = getattr(fault, "message", None)
    if fault_type and message is not None:
        if isinstance(fault_type, type):
            fault_type = _fault_type_name(fault_type)
        return str(fault_type), str(message), _frames_from_mapping(
            getattr(fault, "backtrace", None)
        )

    raise MalformedInputError(
        f"Cannot build a report from object of type {type(fault).__name__}"
    )


def _fault_type_name(cls: type) -> str:
    module = getattr(cls, "__module__", "")
    if module in ("builtins", "", None):
        return cls.__qualname__
    return f"{module}.{cls.__qualname__}"


def _frames_from_traceback(exc: BaseException) -> Tuple[BacktraceFrame, ...]:
    if exc.__traceback__ is None:
        return ()
    return tuple(
        BacktraceFrame(file=frame.filename, line=frame.lineno, function=frame.name)
        for frame in traceback.extract_tb(exc.__traceback__)
    )


def _frames_from_mapping(raw: Any) -> Tuple[BacktraceFrame, ...]:
    if not raw:
        return ()

    frames: List[BacktraceFrame] = []
    for item in raw:
        if isinstance(item, BacktraceFrame):
            frames.append(item)
            continue
        if not isinstance(item, Mapping):
            logger.debug(f"Skipping unrecognised backtrace frame: {item!r}")
            continue
        line = item.get("line")
        try:
            line = int(line) if line is not None else None
        except (TypeError, ValueError):
            line = None
        frames.append(
            BacktraceFrame(
                file=str(item.get("file", "")),
                line=line,
                function=str(item.get("function", "")),
            )
        )
    return tuple(frames)


def _build_performance(
    performance: Any, tag: Optional[str]
) -> Optional[PerformanceAttachment]:
    if performance is None or isinstance(performance, PerformanceAttachment):
        return performance

    if not isinstance(performance, Mapping):
        raise MalformedInputError(
            f"performance must be a mapping, got {type(performance).__name__}"
        )

    duration = performance.get("duration_ms")
    if duration is not None:
        try:
            duration = float(duration)
        except (TypeError, ValueError) as e:
            raise MalformedInputError(
                f"performance duration_ms must be a number, got {duration!r}", cause=e
            ) from e

    return PerformanceAttachment(
        kind=str(performance.get("kind") or tag or "custom"),
        statement=str(performance.get("statement", "")),
        duration_ms=duration,
        attributes=performance.get("attributes") or {},
    )


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    return str(value)
