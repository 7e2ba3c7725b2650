"""HTTP middleware: request logging and response security headers."""

import logging
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

logger = logging.getLogger(__name__)

SLOW_REQUEST_SECONDS = 1.0


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id and log its outcome.

    Server errors log at ERROR, client errors at INFO, the rest at DEBUG.
    Payment confirmation waits on the verifier, so slow requests are
    flagged separately.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.perf_counter()
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id

        response = await call_next(request)
        elapsed = time.perf_counter() - started
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{elapsed:.3f}s"

        line = f"{request.method} {request.url.path} -> {response.status_code} in {elapsed:.3f}s [{request_id}]"
        if response.status_code >= 500:
            logger.error(line)
        elif response.status_code >= 400:
            logger.info(line)
        else:
            logger.debug(line)
        if elapsed > SLOW_REQUEST_SECONDS:
            logger.warning(f"Slow request: {line}")

        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers; API responses are never cached."""

    def __init__(self, app, hsts: bool = True, api_prefix: str = "/api") -> None:
        super().__init__(app)
        self.hsts = hsts
        self.api_prefix = api_prefix

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        headers = response.headers

        headers["X-Content-Type-Options"] = "nosniff"
        headers["X-Frame-Options"] = "DENY"
        headers["Referrer-Policy"] = "no-referrer"
        # Bookings, tokens and wallet addresses travel in API bodies
        if request.url.path.startswith(self.api_prefix):
            headers["Cache-Control"] = "no-store"
        if self.hsts:
            headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response
