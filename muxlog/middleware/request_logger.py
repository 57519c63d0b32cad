"""
muxlog: Request Logger Middleware

Emits exactly one structured line per HTTP request with timing, identity
and outcome. Implemented as pure ASGI middleware so the ``send`` channel
can be wrapped by a pooled ResponseRecorder.
"""

from __future__ import annotations

import time
from collections.abc import Iterable

import structlog
from starlette.types import ASGIApp, Receive, Scope, Send

from muxlog.middleware.log_context import RequestLogContext, bind_log_context
from muxlog.middleware.recorder import RecorderPool, get_recorder_pool

# Status logged when the wrapped app raised before a response started.
FAILED_STATUS = 500


class LoggingMiddleware:
    """Log every request with method, url, status and time to serve."""

    def __init__(
        self,
        app: ASGIApp,
        pool: RecorderPool | None = None,
        skip_paths: Iterable[str] = (),
    ):
        self.app = app
        self.pool = pool or get_recorder_pool()
        self.skip_paths = frozenset(skip_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("path") in self.skip_paths:
            await self.app(scope, receive, send)
            return

        started_ns = time.perf_counter_ns()
        log_context = RequestLogContext.for_request(scope, time.time())
        bind_log_context(scope, log_context)

        with structlog.contextvars.bound_contextvars(request_id=log_context.request_id):
            with self.pool.lease(send, scope) as recorder:
                try:
                    await self.app(scope, receive, recorder)
                except Exception:
                    # The panic boundary emits the single line for this request.
                    code = recorder.status_code if recorder.started else FAILED_STATUS
                    log_context.finish(code, started_ns)
                    raise
                log_context.finish(recorder.status_code, started_ns)

        log_context.emit()
