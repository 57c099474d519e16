"""
asset_tracker.observability.middleware

Request-scoped log context and per-request access log.

Responsibilities:
- Generate/propagate request IDs (`x-request-id`).
- Resolve the caller address once, for both log lines and audit events.
- Emit one `http.request` line with status and latency.
"""

from __future__ import annotations

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from asset_tracker.observability.logging import get_logger

log = get_logger(__name__)

UNKNOWN_ADDRESS = "unknown"


def client_address(request: Request) -> str:
    # Behind a trusted proxy uvicorn has already replaced `client` with the
    # X-Forwarded-For caller (see `forwarded_allow_ips`); raw headers are never trusted.
    return request.client.host if request.client else UNKNOWN_ADDRESS


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=request.url.path,
            method=request.method,
            client_ip=client_address(request),
        )
        started = time.perf_counter()
        try:
            response: Response = await call_next(request)
            log.info(
                "http.request",
                status=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
        finally:
            structlog.contextvars.clear_contextvars()

        response.headers["x-request-id"] = request_id
        return response
