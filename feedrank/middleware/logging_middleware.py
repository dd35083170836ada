"""
HTTP request logging middleware.

One ``http_request`` event per request, tagged with a request id that is
also bound into the structlog context for everything logged downstream.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.stdlib.get_logger("http")

REQUEST_ID_HEADER = "x-request-id"

# Probed every few seconds by the load balancer
QUIET_PATHS = frozenset({"/healthz", "/health"})


def _log_method(status_code: int, path: str):
    if status_code >= 500:
        return logger.error
    if status_code >= 400:
        return logger.warning
    if path in QUIET_PATHS:
        return logger.debug
    return logger.info


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Time each request and log its outcome."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            path = request.url.path
            _log_method(status_code, path)(
                "http_request",
                method=request.method,
                path=path,
                query=request.url.query or None,
                status=status_code,
                duration_ms=round((time.perf_counter() - start) * 1000, 1),
                client=request.client.host if request.client else None,
                user_agent=request.headers.get("user-agent"),
            )
