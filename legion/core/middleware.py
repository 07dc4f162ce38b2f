"""Custom middleware for the gateway."""

import json
import secrets
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from legion.core.logging import get_logger, request_context

logger = get_logger(__name__)


def _json_error(status_code: int, code: str, message: str) -> Response:
    ctx = request_context.get()
    body = {
        "detail": message,
        "error": message,
        "code": code,
        "request_id": ctx.get("request_id") if ctx else None,
    }
    return Response(
        content=json.dumps(body),
        status_code=status_code,
        media_type="application/json",
    )


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware to inject request context for logging."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request with context."""
        request_id = request.headers.get("X-Request-ID") or secrets.token_hex(8)
        start_time = time.perf_counter()

        ctx = {
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
        }
        token = request_context.set(ctx)

        try:
            response = await call_next(request)

            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code}",
                data={"duration_ms": round(duration_ms, 2)},
            )

            response.headers["X-Request-ID"] = request_id
            return response

        finally:
            request_context.reset(token)


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject request bodies whose declared size exceeds the limit."""

    def __init__(self, app, max_bytes: int = 52428800):
        """Initialize with max size in bytes."""
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Check request size before processing."""
        content_length = request.headers.get("content-length")
        if not content_length:
            return await call_next(request)

        try:
            declared = int(content_length)
        except ValueError:
            return _json_error(400, "E1400", "Invalid Content-Length header")

        if declared > self.max_bytes:
            logger.warning(
                f"Request too large: {declared} bytes",
                data={"max_bytes": self.max_bytes},
            )
            return _json_error(413, "E4130", "Request body too large")

        return await call_next(request)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add baseline security headers to all responses.

    Content-Security-Policy is left unset: the bundled single-page app loads
    scripts from third-party CDNs.
    """

    SECURITY_HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "Referrer-Policy": "no-referrer",
        "X-Frame-Options": "DENY",
    }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Add security headers to response."""
        response = await call_next(request)

        for header, value in self.SECURITY_HEADERS.items():
            if header not in response.headers:
                response.headers[header] = value

        return response
