"""Observability middleware for FastAPI.

Provides:
- Request ID generation and propagation
- Request/response timing, with a warning for slow requests
- Structured logging for all requests

Usage:
    from libs.common.middleware import add_observability_middleware

    app = FastAPI()
    add_observability_middleware(app)
"""
import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from libs.common.logging import (
    clear_request_context,
    configure_logging,
    get_logger,
    set_request_context,
)

logger = get_logger(__name__)

# Document assembly fans out to storage; anything slower than this is worth a look
SLOW_REQUEST_MS = 5000

QUIET_PATHS = frozenset({"/health"})


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Bind a request id to the logging context and log each request's outcome.

    The id comes from the caller's X-Request-ID header when present and is
    echoed back on the response.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = set_request_context(
            request_id=request.headers.get("X-Request-ID"),
            path=request.url.path,
            method=request.method,
        )
        quiet = request.url.path in QUIET_PATHS
        start_time = time.perf_counter()

        if not quiet:
            logger.info(
                "Request started",
                extra={"extra_fields": {"query": request.url.query or None}},
            )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "Request failed with unhandled exception",
                extra={
                    "extra_fields": {
                        "error": str(e),
                        "duration_ms": _elapsed_ms(start_time),
                    }
                },
            )
            clear_request_context()
            raise

        duration_ms = _elapsed_ms(start_time)
        if not quiet:
            fields = {"status_code": response.status_code, "duration_ms": duration_ms}
            if response.status_code >= 400:
                logger.warning("Request completed", extra={"extra_fields": fields})
            elif duration_ms > SLOW_REQUEST_MS:
                logger.warning("Slow request", extra={"extra_fields": fields})
            else:
                logger.info("Request completed", extra={"extra_fields": fields})

        clear_request_context()
        response.headers["X-Request-ID"] = request_id
        return response


def _elapsed_ms(start_time: float) -> float:
    return round((time.perf_counter() - start_time) * 1000, 2)


def add_observability_middleware(app: FastAPI) -> None:
    """
    Add observability middleware to a FastAPI app.

    Call this after creating the app but before adding routes.
    """
    configure_logging()
    app.add_middleware(RequestContextMiddleware)
    logger.info("Observability middleware initialized")
