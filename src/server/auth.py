"""
API key check for the HTTP (SSE) transport.

Clients send ``Authorization: Bearer <key>`` or ``X-API-Key: <key>``.
With no key configured every request passes.
"""

import secrets
from typing import Callable, Iterable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from src.shared.logging import setup_logging

logger = setup_logging("falkordb_mcp.auth", level="INFO")


def _supplied_key(request: Request) -> str | None:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return request.headers.get("x-api-key")


class ApiKeyMiddleware(BaseHTTPMiddleware):
    """Reject requests without the configured API key."""

    def __init__(self, app: ASGIApp, api_key: str = "", exempt_paths: Iterable[str] = ("/health",)):
        super().__init__(app)
        self._api_key = api_key
        self._exempt_paths = frozenset(exempt_paths)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self._api_key or request.url.path in self._exempt_paths:
            return await call_next(request)

        supplied = _supplied_key(request)
        if supplied is None or not secrets.compare_digest(supplied, self._api_key):
            logger.warning("Rejected unauthenticated request to %s", request.url.path)
            return JSONResponse({"error": "Unauthorized"}, status_code=401)

        return await call_next(request)
