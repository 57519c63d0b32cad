"""
muxlog: ASGI Application Entry Point

Middleware order for an inbound request (outermost first):

    PanicRecoveryMiddleware → LoggingMiddleware → AuthGateMiddleware → router
"""

from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from muxlog import __version__
from muxlog.config import Settings, get_settings
from muxlog.error_handlers import register_error_handlers
from muxlog.middleware import (
    AuthGateMiddleware,
    LoggingMiddleware,
    PanicRecoveryMiddleware,
    get_recorder_pool,
    protected_routes,
)
from muxlog.observability import configure_logging
from muxlog.routes import router

log = structlog.get_logger("muxlog.startup")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    settings = get_settings()
    log.info("startup", env=settings.app_env, port=settings.port)
    yield
    log.info("shutdown")


def create_app(settings: Settings | None = None, configure: bool = True) -> FastAPI:
    """Application factory."""
    settings = settings or get_settings()
    if configure:
        configure_logging(settings.log_level)

    app = FastAPI(
        title="muxlog",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    register_error_handlers(app)

    # add_middleware prepends, so the last one added runs first.
    app.add_middleware(
        AuthGateMiddleware,
        protected_paths=protected_routes(router, settings.protected_path_set),
    )
    app.add_middleware(
        LoggingMiddleware,
        pool=get_recorder_pool(max_idle=settings.recorder_pool_max_idle),
    )
    app.add_middleware(PanicRecoveryMiddleware)

    app.include_router(router)

    return app
