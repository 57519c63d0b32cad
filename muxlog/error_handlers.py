"""
muxlog: Exception Handlers

HTTP errors raised by the router or handlers (404 for unmapped paths,
405 for wrong methods) are rendered as one JSON shape carrying the
request id, so a client report can be matched to its log line.
Anything else propagates to PanicRecoveryMiddleware.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from muxlog.middleware.log_context import find_log_context


def register_error_handlers(app: FastAPI) -> None:
    """Register exception handlers on the FastAPI app."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        log_context = find_log_context(request.scope)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "status_code": exc.status_code,
                "detail": exc.detail,
                "request_id": log_context.request_id if log_context is not None else None,
            },
            headers=getattr(exc, "headers", None),
        )
