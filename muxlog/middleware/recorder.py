"""
muxlog: Response Recorder and Pool

ResponseRecorder stands in for the ASGI ``send`` callable and remembers
the status code that was actually sent, without buffering or altering any
message. Recorders are leased from a process-wide RecorderPool so a busy
server does not allocate one per request.

Usage::

    pool = get_recorder_pool()
    with pool.lease(send, scope) as recorder:
        await app(scope, receive, recorder)
        status = recorder.status_code
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Optional

from starlette.types import Message, Scope, Send

from muxlog.errors import CapabilityUnsupported

DEFAULT_STATUS = 200

# ASGI response extensions a server may advertise in scope["extensions"].
# The recorder forwards these message types only when the server supports them.
FORWARDED_CAPABILITIES = frozenset({
    "http.response.trailers",
    "http.response.push",
    "http.response.early_hint",
    "http.response.zerocopysend",
    "http.response.pathsend",
})


class ResponseRecorder:
    """ASGI send decorator that records the response status."""

    def __init__(self):
        self._send: Optional[Send] = None
        self._extensions: dict = {}
        self.status_code = DEFAULT_STATUS
        self.started = False

    def reset(self, send: Optional[Send], scope: Optional[Scope] = None) -> None:
        """Point the recorder at a new request's send channel and clear its state."""
        self._send = send
        self._extensions = (scope or {}).get("extensions") or {}
        self.status_code = DEFAULT_STATUS
        self.started = False

    def supports(self, capability: str) -> bool:
        """Whether the underlying server advertised ``capability``."""
        return capability in FORWARDED_CAPABILITIES and capability in self._extensions

    async def __call__(self, message: Message) -> None:
        kind = message["type"]
        if kind == "http.response.start":
            self.status_code = message["status"]
            self.started = True
        elif kind == "http.response.body":
            self.started = True
        elif kind in FORWARDED_CAPABILITIES:
            if kind not in self._extensions:
                raise CapabilityUnsupported(kind)
            if kind in ("http.response.zerocopysend", "http.response.pathsend"):
                self.started = True
        await self._forward(message)

    async def set_status(self, code: int, headers: Iterable[tuple[bytes, bytes]] = ()) -> None:
        """Send the response start line.

        Repeated calls are forwarded as-is; the server decides whether a
        second start is an error. ``status_code`` always reflects the most
        recent call.
        """
        await self({"type": "http.response.start", "status": code, "headers": list(headers)})

    async def write(self, body: bytes, more_body: bool = True) -> None:
        """Send body bytes, sending an implicit start first if none was sent."""
        if not self.started:
            await self.set_status(self.status_code)
        await self({"type": "http.response.body", "body": body, "more_body": more_body})

    async def _forward(self, message: Message) -> None:
        if self._send is None:
            raise RuntimeError("ResponseRecorder used after release")
        await self._send(message)


class RecorderPool:
    """Thread-safe bag of idle recorders.

    The pool never resets a recorder; ``lease`` resets on the caller's
    behalf. Idle recorders beyond ``max_idle`` are dropped on release.
    """

    def __init__(self, max_idle: int = 1024):
        self.max_idle = max_idle
        self._idle: list[ResponseRecorder] = []
        self._lock = threading.Lock()

    @property
    def idle(self) -> int:
        with self._lock:
            return len(self._idle)

    def acquire(self) -> ResponseRecorder:
        with self._lock:
            if self._idle:
                return self._idle.pop()
        return ResponseRecorder()

    def release(self, recorder: ResponseRecorder) -> None:
        recorder._send = None
        with self._lock:
            if len(self._idle) < self.max_idle:
                self._idle.append(recorder)

    @contextmanager
    def lease(self, send: Send, scope: Optional[Scope] = None) -> Iterator[ResponseRecorder]:
        """Acquire and reset a recorder, releasing it on exit even if the body raises."""
        recorder = self.acquire()
        recorder.reset(send, scope)
        try:
            yield recorder
        finally:
            self.release(recorder)


# ──────────────────────────────────────────────
# Process-wide pool
# ──────────────────────────────────────────────

_pool: Optional[RecorderPool] = None
_pool_lock = threading.Lock()


def get_recorder_pool(max_idle: int = 1024) -> RecorderPool:
    """Get or create the process-wide pool.

    Creation happens exactly once even when the first requests arrive
    concurrently. ``max_idle`` only applies to that first call.
    """
    global _pool
    if _pool is None:
        with _pool_lock:
            if _pool is None:
                _pool = RecorderPool(max_idle=max_idle)
    return _pool
