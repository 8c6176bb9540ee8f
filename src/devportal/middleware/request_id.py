"""Request ID and access log middleware.

Learn: Every request gets an id, either from the incoming X-Request-ID
header (for distributed tracing) or a fresh UUID. The id is bound to
structlog's contextvars so it appears in every log entry written while
handling the request, and is echoed back in the response header.

With access_log enabled (development), one "http.request" line is
written per request with method, path, status and latency.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger()


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Generate and propagate a unique request ID."""

    def __init__(self, app, access_log: bool = False):
        super().__init__(app)
        self.access_log = access_log

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        started = time.perf_counter()
        response: Response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        if self.access_log:
            client = request.client
            logger.info(
                "http.request",
                client=f"{client.host}:{client.port}" if client else "unknown",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                latency_ms=round((time.perf_counter() - started) * 1000, 2),
            )
        return response
