"""
pg_provisioner.observability.middleware

HTTP middleware for request-scoped logging context.

Responsibilities:
- Generate/propagate request IDs.
- Bind request metadata into structlog contextvars.
"""

from __future__ import annotations

import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Binds a request id plus path/method for every log line emitted while a
    request is served, and echoes the id back in `x-request-id`.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=request.url.path,
            method=request.method,
        )
        try:
            response: Response = await call_next(request)
        finally:
            structlog.contextvars.clear_contextvars()

        response.headers["x-request-id"] = request_id
        return response
