"""
muxlog: Auth Gate Middleware

Marks routes that require authorization. This is a gate in name only:
it logs the intent and always delegates to the wrapped app.

A protected path can be limited to the methods its route serves, so a
request the router will reject with 405 is not reported as gated.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

import structlog
from fastapi import APIRouter
from starlette.types import ASGIApp, Receive, Scope, Send

from muxlog.middleware.log_context import request_url

log = structlog.get_logger(__name__)

DEFAULT_PROTECTED_PATHS = frozenset({"/auth"})

# Gate every method on the path.
ANY_METHOD = None


def protected_routes(router: APIRouter, paths: Iterable[str]) -> dict[str, frozenset[str]]:
    """Map each protected path to the methods ``router`` serves on it.

    Paths the router does not serve are left out, since the router answers
    them with 404 before any handler runs.
    """
    wanted = set(paths)
    routes: dict[str, set[str]] = {}
    for route in router.routes:
        path = getattr(route, "path", None)
        methods = getattr(route, "methods", None)
        if path in wanted and methods:
            routes.setdefault(path, set()).update(methods)
    return {path: frozenset(methods) for path, methods in routes.items()}


class AuthGateMiddleware:
    """Log that a protected route requires auth, then pass the request on.

    ``protected_paths`` is either a set of paths (every method gated) or a
    mapping of path to the methods gated on it.
    """

    def __init__(
        self,
        app: ASGIApp,
        protected_paths: Iterable[str] | Mapping[str, Iterable[str]] = DEFAULT_PROTECTED_PATHS,
    ):
        self.app = app
        if isinstance(protected_paths, Mapping):
            self.protected = {
                path: frozenset(method.upper() for method in methods)
                for path, methods in protected_paths.items()
            }
        else:
            self.protected = dict.fromkeys(protected_paths, ANY_METHOD)

    def is_gated(self, scope: Scope) -> bool:
        path = scope.get("path")
        if path not in self.protected:
            return False
        methods = self.protected[path]
        return methods is ANY_METHOD or scope.get("method", "GET") in methods

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and self.is_gated(scope):
            log.info("auth.required", url=request_url(scope))
        await self.app(scope, receive, send)
