"""Structured event helpers shared by the stores and the web layer."""

from __future__ import annotations

import contextlib
import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional


DEFAULT_EVENT_LOGGER = logging.getLogger("vocab_lessons.events")

EventEmitter = Callable[..., None]


def sanitize_context_value(value: Any) -> Any:
    """Return a JSON-serialisable representation for *value*."""

    if value is None:
        return None
    if isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        sanitized: Dict[str, Any] = {}
        for key, item in value.items():
            cleaned = sanitize_context_value(item)
            if cleaned is None or cleaned == "":
                continue
            sanitized[str(key)] = cleaned
        return sanitized
    if isinstance(value, (list, tuple, set)):
        joined = ", ".join(str(item) for item in value)
    else:
        joined = str(value)
    trimmed = joined.strip()
    if not trimmed:
        return None
    return trimmed[:200] + ("…" if len(trimmed) > 200 else "")


def normalize_context(values: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Drop empty entries and sanitise the rest."""

    if not values:
        return {}
    normalised: Dict[str, Any] = {}
    for key, raw_value in values.items():
        if not key:
            continue
        value = sanitize_context_value(raw_value)
        if value is None or value == "":
            continue
        normalised[str(key)] = value
    return normalised


def emit_structured_event(
    event_type: str,
    message: str,
    *,
    payload: Optional[Dict[str, Any]] = None,
    correlation: Optional[Dict[str, Any]] = None,
    duration_ms: Optional[float] = None,
    level: int = logging.INFO,
    logger: logging.Logger | logging.LoggerAdapter = DEFAULT_EVENT_LOGGER,
) -> None:
    """Log ``message`` tagged with ``event_type`` and flattened details."""

    base_message = str(message).strip()
    normalised_payload = normalize_context(payload)
    normalised_correlation = normalize_context(correlation)
    combined = {**normalised_correlation, **normalised_payload}
    if duration_ms is not None:
        combined["duration_ms"] = round(float(duration_ms), 2)
    details_text = ", ".join(f"{key}={value}" for key, value in combined.items())
    display_message = f"[{event_type}] {base_message}" if event_type else base_message
    log_message = f"{display_message} ({details_text})" if details_text else display_message
    extra: Dict[str, Any] = {"event_type": event_type or "", "event_message": base_message}
    if normalised_payload:
        extra["event_payload"] = normalised_payload
    if normalised_correlation:
        extra["event_correlation"] = normalised_correlation
    logger.log(level, log_message, extra=extra)


def emit_file_event(operation: str, **kwargs: Any) -> None:
    """Emit a structured file-system event."""

    emit_structured_event("FILE_OP", operation, **kwargs)


@contextlib.contextmanager
def track_file_operation(
    emitter: Optional[EventEmitter],
    operation: str,
    **payload: Any,
) -> Iterator[Dict[str, Any]]:
    """Time a store operation and report it through *emitter*.

    The yielded mapping can be enriched by the caller; ``status`` and
    ``error`` are filled in automatically.
    """

    if emitter is None:
        yield dict(payload)
        return

    start = time.perf_counter()
    event_payload: Dict[str, Any] = dict(payload)
    try:
        yield event_payload
    except Exception as exc:
        event_payload.setdefault("status", "error")
        event_payload.setdefault("error", f"{exc.__class__.__name__}: {exc}")
        raise
    finally:
        event_payload.setdefault("status", "ok")
        duration_ms = (time.perf_counter() - start) * 1000.0
        emitter(
            "FILE_OP",
            operation,
            payload={key: value for key, value in event_payload.items() if value is not None},
            duration_ms=duration_ms,
        )


__all__ = [
    "DEFAULT_EVENT_LOGGER",
    "EventEmitter",
    "emit_file_event",
    "emit_structured_event",
    "normalize_context",
    "sanitize_context_value",
    "track_file_operation",
]
