"""
muxlog: Routes

Stub handlers. Each logs that it ran and returns an empty 200.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Response

log = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/")
async def index() -> Response:
    log.info("index.handled")
    return Response()


@router.get("/unauth")
async def something() -> Response:
    log.info("unauth.handled")
    return Response()


@router.get("/auth")
async def another() -> Response:
    """Protected by AuthGateMiddleware."""
    log.info("auth.handled")
    return Response()
