"""
muxlog: Request Log Context

The ordered set of structured fields describing one request. One instance
is created per request by LoggingMiddleware and stored on the ASGI scope,
so every downstream handler mutates the same object and its additions
reach the emitted line.

Usage::

    @router.get("/orders")
    async def orders(log_context: RequestLogContext = Depends(get_log_context)):
        log_context.add("orders_returned", 12)
"""

from __future__ import annotations

import random
import time
from collections.abc import Iterator, Mapping, MutableMapping
from typing import Union

from starlette.requests import Request
from starlette.types import Scope

from muxlog.observability import emit_event, emit_record, render_record

LogValue = Union[str, int, float]

STATE_KEY = "log_context"

# Fields present on every context from construction onwards, in this order.
SEED_FIELDS = (
    "request_time",
    "request_id",
    "event",
    "remote_addr",
    "method",
    "url",
    "content_length",
)

_REQUEST_ID_SPACE = 1_000_000_000


def new_request_id() -> str:
    """Eight lowercase hex digits. Collisions are rare, not impossible."""
    return f"{random.randrange(_REQUEST_ID_SPACE):08x}"


def _remote_addr(scope: Scope) -> str:
    client = scope.get("client")
    if not client:
        return ""
    host, port = client
    return f"{host}:{port}"


def request_url(scope: Scope) -> str:
    """Request target as sent: path plus ``?query`` when present."""
    path = scope.get("path", "")
    query = scope.get("query_string", b"")
    if query:
        return f"{path}?{query.decode('latin-1')}"
    return path


def _content_length(scope: Scope) -> int:
    """Declared body length; 0 when absent, -1 when unknown."""
    length = None
    chunked = False
    for name, value in scope.get("headers", ()):
        if name == b"content-length":
            length = value
        elif name == b"transfer-encoding" and b"chunked" in value.lower():
            chunked = True
    if length is None:
        return -1 if chunked else 0
    try:
        return int(length)
    except ValueError:
        return -1


class RequestLogContext(MutableMapping[str, LogValue]):
    """Insertion-ordered log fields for a single request."""

    def __init__(self, fields: Mapping[str, LogValue] | None = None):
        self._fields: dict[str, LogValue] = dict(fields or {})

    @classmethod
    def for_request(cls, scope: Scope, request_time: float | None = None) -> RequestLogContext:
        """Seed a context from an HTTP scope."""
        if request_time is None:
            request_time = time.time()
        return cls({
            "request_time": int(request_time),
            "request_id": new_request_id(),
            "event": "request",
            "remote_addr": _remote_addr(scope),
            "method": scope.get("method", ""),
            "url": request_url(scope),
            "content_length": _content_length(scope),
        })

    # ── Mapping protocol ──

    def __getitem__(self, key: str) -> LogValue:
        return self._fields[key]

    def __setitem__(self, key: str, value: LogValue) -> None:
        self._fields[key] = value

    def __delitem__(self, key: str) -> None:
        del self._fields[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"RequestLogContext({self._fields!r})"

    # ── Handler helpers ──

    @property
    def request_id(self) -> str | None:
        value = self._fields.get("request_id")
        return value if isinstance(value, str) else None

    def add(self, key: str, value: LogValue) -> None:
        """Add or overwrite one field."""
        self._fields[key] = value

    def replace(self, fields: Mapping[str, LogValue]) -> None:
        """Swap the whole field set in place."""
        self._fields = dict(fields)

    def finish(self, code: int, started_ns: int) -> None:
        """Record the outcome.

        ``tts_ns`` holds whole milliseconds, truncated. The key name is kept
        as-is because existing log consumers read it with that magnitude.
        """
        self._fields["code"] = code
        self._fields["tts_ns"] = (time.perf_counter_ns() - started_ns) // 1_000_000

    def render(self) -> str:
        return render_record(self._fields)

    def emit(self) -> None:
        emit_record(self._fields)

    def emit_event(self, event: str, message: str, level: str = "info") -> None:
        emit_event(self._fields, event, message, level)


# ──────────────────────────────────────────────
# Scope accessors
# ──────────────────────────────────────────────


def bind_log_context(scope: Scope, log_context: RequestLogContext) -> None:
    """Attach ``log_context`` to the scope (visible as ``request.state.log_context``)."""
    scope.setdefault("state", {})[STATE_KEY] = log_context


def find_log_context(scope: Scope) -> RequestLogContext | None:
    state = scope.get("state")
    if not state:
        return None
    return state.get(STATE_KEY)


def get_log_context(request: Request) -> RequestLogContext:
    """FastAPI dependency returning the current request's log context.

    Outside LoggingMiddleware (e.g. a bare router under test) a detached
    context is returned so handlers never need to branch.
    """
    log_context = find_log_context(request.scope)
    if log_context is None:
        log_context = RequestLogContext.for_request(request.scope)
        bind_log_context(request.scope, log_context)
    return log_context
