"""
muxlog: Panic Recovery Middleware

Outermost guard of the stack. An exception escaping the wrapped app is
logged once as a ``"panic"`` event and swallowed so the server keeps
serving. No response is produced here; if nothing was sent yet the ASGI
server answers with its own 500.
"""

from __future__ import annotations

import traceback

from starlette.types import ASGIApp, Receive, Scope, Send

from muxlog.middleware.log_context import RequestLogContext, find_log_context


class PanicRecoveryMiddleware:
    """Convert unhandled handler exceptions into a logged event."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self.app(scope, receive, send)
            return

        try:
            await self.app(scope, receive, send)
        except Exception as exc:
            log_context = find_log_context(scope) or RequestLogContext()
            log_context.emit_event("panic", f"{exc!r} {traceback.format_exc()}", level="error")
