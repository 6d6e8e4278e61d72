"""Middleware for request processing and observability."""

import secrets
import time
from datetime import datetime, timezone

import structlog
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from techhive.services.logging_service import RequestLogFile

REQUEST_ID_HEADER = "X-Request-Id"

logger = structlog.get_logger(__name__)


def new_request_id() -> str:
    """Request id of the form ``req_<epoch-ms>_<random>``."""
    return f"req_{int(time.time() * 1000)}_{secrets.token_hex(6)}"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Middleware to add a request ID to every request.

    - Uses the X-Request-Id header if present, otherwise generates one
    - Stores it in request.state.request_id for the response envelope
    - Binds it to the structlog context for all subsequent logging
    - Adds the X-Request-Id response header
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or new_request_id()
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds basic hardening headers to every response."""

    HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "X-XSS-Protection": "1; mode=block",
    }

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        for header, value in self.HEADERS.items():
            response.headers[header] = value
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request to the daily request log file and to structlog."""

    def __init__(self, app: ASGIApp, log_file: RequestLogFile | None = None):
        super().__init__(app)
        self.log_file = log_file

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else None

        if self.log_file is not None:
            await run_in_threadpool(
                self.log_file.write,
                method=request.method,
                url=str(request.url.path)
                + (f"?{request.url.query}" if request.url.query else ""),
                client_ip=client_ip,
                user_agent=request.headers.get("user-agent"),
                when=datetime.now(timezone.utc),
            )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error_type=type(e).__name__,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            raise

        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            client_ip=client_ip,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return response
