"""
Shared fixtures: a log capture stream and an app with extra test routes.
"""

from __future__ import annotations

import io
import json

import pytest
import structlog
from fastapi import APIRouter, Depends, Response
from fastapi.testclient import TestClient

from muxlog.config import Settings
from muxlog.main import create_app
from muxlog.middleware.log_context import RequestLogContext, get_log_context
from muxlog.observability import configure_logging


class LogCapture:
    """Collects everything written to the log sink during a test."""

    def __init__(self):
        self.stream = io.StringIO()

    def lines(self) -> list[dict]:
        return [json.loads(line) for line in self.stream.getvalue().splitlines() if line.strip()]

    def records(self) -> list[dict]:
        """Request/event records only (no level or timestamp added)."""
        return [line for line in self.lines() if "level" not in line]

    def events(self, name: str) -> list[dict]:
        return [line for line in self.lines() if line.get("event") == name]


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    structlog.reset_defaults()


@pytest.fixture
def log_capture():
    capture = LogCapture()
    configure_logging("DEBUG", stream=capture.stream)
    return capture


# ──────────────────────────────────────────────
# Extra routes mounted by the app fixture
# ──────────────────────────────────────────────

extra_router = APIRouter(prefix="/extra")


@extra_router.get("/boom")
async def boom():
    raise RuntimeError("boom")


@extra_router.get("/missing")
async def missing():
    return Response(content=b"gone", status_code=404)


@extra_router.get("/annotated")
async def annotated(log_context: RequestLogContext = Depends(get_log_context)):
    log_context.add("user", "alice")
    log_context["items"] = 3
    return Response()


@extra_router.get("/nan")
async def nan(log_context: RequestLogContext = Depends(get_log_context)):
    log_context.add("ratio", float("nan"))
    return Response()


@pytest.fixture
def app(log_capture):
    application = create_app(Settings(), configure=False)
    application.include_router(extra_router)
    return application


@pytest.fixture
def client(app):
    return TestClient(app, raise_server_exceptions=False)
