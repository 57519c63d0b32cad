"""
muxlog: Structured Logging

structlog configuration for the process plus the record path used for
request lines. Request records are rendered here into one compact JSON
line and handed to a structlog logger that writes the line untouched,
so the emitted schema is exactly the record's fields in insertion order.

Usage::

    configure_logging("INFO")
    emit_record({"event": "request", "request_id": "0a1b2c3d", "code": 200})
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping, MutableMapping
from typing import IO, Any

import structlog

from muxlog.errors import SerializationFailure

_COMPACT = (",", ":")


def configure_logging(level: str = "INFO", stream: IO[str] | None = None) -> None:
    """Configure structlog to write JSON lines to ``stream`` (stderr by default).

    Safe to call more than once; the last call wins. Loggers obtained via
    ``structlog.get_logger`` before this call pick up the new configuration.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(stream or sys.stderr),
        cache_logger_on_first_use=False,
    )


# ──────────────────────────────────────────────
# Record path
# ──────────────────────────────────────────────


def _prerendered(_logger: Any, _method: str, event_dict: MutableMapping[str, Any]) -> str:
    return event_dict["event"]


# Shares the configured logger factory but neither the processors nor the
# level filter: every request gets its line whatever LOG_LEVEL is.
_records = structlog.wrap_logger(
    None,
    processors=[_prerendered],
    wrapper_class=structlog.BoundLogger,
)


def render_record(fields: Mapping[str, Any]) -> str:
    """Render a record as a single JSON line.

    Only JSON-native values are accepted and NaN/Infinity are rejected, so
    the output is strict JSON. Key order follows insertion order, which
    makes rendering the same record twice byte-identical.

    Raises:
        SerializationFailure: if any value cannot be encoded.
    """
    try:
        return json.dumps(dict(fields), separators=_COMPACT, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise SerializationFailure(_record_id(fields), str(exc)) from exc


def _render_lenient(fields: Mapping[str, Any]) -> str:
    return json.dumps(dict(fields), separators=_COMPACT, default=repr)


def _record_id(fields: Mapping[str, Any]) -> str | None:
    request_id = fields.get("request_id")
    return request_id if isinstance(request_id, str) else None


def _renderable(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Copy of ``fields`` without the values strict rendering rejects."""
    kept: dict[str, Any] = {}
    for key, value in fields.items():
        if not isinstance(key, str):
            continue
        try:
            json.dumps(value, allow_nan=False)
        except (TypeError, ValueError):
            continue
        kept[key] = value
    return kept


def emit_record(fields: Mapping[str, Any], level: str = "info") -> None:
    """Write one record line, or a fallback error line if it cannot be rendered.

    The fallback keeps every field that renders on its own and drops the
    rest, so a request's seed fields, ``code`` and ``tts_ns`` survive.
    """
    try:
        line = render_record(fields)
    except SerializationFailure as exc:
        emit_error(_renderable(fields), exc, "unable to serialize log record")
        return

    getattr(_records, level)(line)


def emit_event(fields: MutableMapping[str, Any], event: str, message: str, level: str = "info") -> None:
    """Emit ``fields`` as a novel event, e.g. ``"panic"``, with a message."""
    fields["event"] = event
    fields["message"] = message
    emit_record(fields, level)


def emit_error(fields: MutableMapping[str, Any], error: BaseException | None, message: str) -> None:
    """Emit ``fields`` as an ``"error"`` event.

    Error records are rendered leniently (unknown values fall back to their
    repr) so this path never raises SerializationFailure and never loops
    back into ``emit_record``.
    """
    fields["event"] = "error"
    fields["message"] = message
    fields["error"] = str(error) if error is not None else "internal error condition"
    _records.error(_render_lenient(fields))
