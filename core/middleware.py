"""
Application Middleware and Exception Handlers for the VideoHub API.

Cross-cutting request handling: correlation, error envelopes, timing and
request-size limits. Every failure path ends in the same response envelope
as a successful call.

Key Components:
- `CorrelationMiddleware`: Assigns (or propagates) a correlation ID per
  request and echoes it in the `X-Correlation-ID` response header.
- `ErrorHandlingMiddleware`: Last line of defense. Any exception that escapes
  the exception handlers becomes a generic 500 envelope without a stack trace.
- `PerformanceMiddleware`: Logs request start and completion and adds an
  `X-Process-Time` header. Slow requests are logged as warnings.
- `RequestValidationMiddleware`: Rejects oversized bodies and unsupported
  content types before routing.
- `register_exception_handlers`: Maps `VideoHubException`, `HTTPException`
  and FastAPI's `RequestValidationError` to envelopes.

Architectural Design:
- Domain exceptions are handled by app-level exception handlers so their
  status codes are preserved; the middleware only sees what those handlers
  do not cover.
- `CorrelationMiddleware` is added last so it runs first and the correlation
  ID is available to everything downstream.
"""

import os
import time
import uuid
from typing import Callable
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .logging_config import set_correlation_id, get_logger
from .exceptions import VideoHubException
from .response import error

logger = get_logger("core.middleware")

SLOW_REQUEST_SECONDS = 1.0


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Middleware to add correlation IDs to requests"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = (
            request.headers.get("X-Correlation-ID")
            or request.headers.get("X-Request-ID")
            or str(uuid.uuid4())
        )

        set_correlation_id(correlation_id)
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turns unexpected exceptions into a 500 envelope"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(
                f"Unexpected error: {str(e)}",
                extra={
                    "error_type": type(e).__name__,
                    "path": request.url.path,
                    "method": request.method,
                },
                exc_info=True,
            )
            return error(500, "An unexpected error occurred")


class PerformanceMiddleware(BaseHTTPMiddleware):
    """Middleware for performance monitoring and logging"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        logger.info(
            f"Request started: {request.method} {request.url.path}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "query_params": dict(request.query_params),
                "client_ip": request.client.host if request.client else None,
            },
        )

        response = await call_next(request)

        process_time_ms = round((time.time() - start_time) * 1000, 2)
        response.headers["X-Process-Time"] = str(process_time_ms)

        logger.info(
            f"Request completed: {request.method} {request.url.path} - {response.status_code}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "process_time_ms": process_time_ms,
            },
        )

        if process_time_ms > SLOW_REQUEST_SECONDS * 1000:
            logger.warning(
                f"Slow request detected: {request.method} {request.url.path}",
                extra={"path": request.url.path, "process_time_ms": process_time_ms},
            )

        return response


class RequestValidationMiddleware(BaseHTTPMiddleware):
    """Middleware for request size and content type checks"""

    ALLOWED_CONTENT_TYPES = (
        "application/json",
        "application/x-www-form-urlencoded",
        "multipart/form-data",
    )

    def __init__(self, app: ASGIApp, max_request_size: int = None):
        super().__init__(app)
        self.max_request_size = max_request_size or int(
            os.getenv("MAX_REQUEST_SIZE", str(100 * 1024 * 1024))
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        content_length = request.headers.get("content-length")
        try:
            body_size = int(content_length) if content_length else 0
        except ValueError:
            return error(400, "Invalid Content-Length header")

        if body_size > self.max_request_size:
            logger.warning(
                f"Request too large: {body_size} bytes",
                extra={
                    "content_length": body_size,
                    "max_size": self.max_request_size,
                    "path": request.url.path,
                },
            )
            return error(
                413,
                f"Request size exceeds maximum allowed size of {self.max_request_size} bytes",
            )

        # Bodiless POSTs (toggles, logout) carry no content type
        if request.method in ("POST", "PUT", "PATCH") and body_size > 0:
            content_type = request.headers.get("content-type", "")
            if not any(allowed in content_type for allowed in self.ALLOWED_CONTENT_TYPES):
                logger.warning(
                    f"Invalid content type: {content_type}",
                    extra={"content_type": content_type, "path": request.url.path},
                )
                return error(415, f"Content type '{content_type}' is not supported")

        return await call_next(request)


async def videohub_exception_handler(request: Request, exc: VideoHubException) -> Response:
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        f"Application error: {exc.message}",
        extra={
            "error_type": type(exc).__name__,
            "error_code": exc.error_code,
            "details": exc.details,
            "path": request.url.path,
            "method": request.method,
        },
    )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return error(exc.status_code, exc.message, headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    logger.warning(
        f"HTTP exception: {exc.status_code} - {exc.detail}",
        extra={"status_code": exc.status_code, "path": request.url.path},
    )
    return error(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> Response:
    problems = []
    for item in exc.errors():
        location = ".".join(str(part) for part in item.get("loc", ()) if part != "body")
        problems.append(f"{location}: {item.get('msg')}" if location else item.get("msg"))
    message = "; ".join(problems) or "Invalid request"
    logger.info(f"Request validation failed: {message}", extra={"path": request.url.path})
    return error(400, message)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(VideoHubException, videohub_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
