# Middleware: panic recovery, request logging, auth gating
from muxlog.middleware.auth import AuthGateMiddleware, protected_routes
from muxlog.middleware.log_context import RequestLogContext, get_log_context
from muxlog.middleware.panic import PanicRecoveryMiddleware
from muxlog.middleware.recorder import RecorderPool, ResponseRecorder, get_recorder_pool
from muxlog.middleware.request_logger import LoggingMiddleware

__all__ = [
    "AuthGateMiddleware",
    "LoggingMiddleware",
    "PanicRecoveryMiddleware",
    "RecorderPool",
    "RequestLogContext",
    "ResponseRecorder",
    "get_log_context",
    "get_recorder_pool",
    "protected_routes",
]
