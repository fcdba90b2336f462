"""Request tracing middleware for the payments API.

Every request gets an ``X-Request-ID`` (propagated from the caller when
present) that is bound to the logging context, echoed on the response, and
forwarded on internal service calls.

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

# Paths polled by load balancers; not worth a log line each.
_QUIET_PATHS = {"/health"}


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds request context and logs one line per completed request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = set_request_context(
            request_id=request.headers.get("X-Request-ID"),
            path=request.url.path,
            method=request.method,
        )
        quiet = request.url.path in _QUIET_PATHS
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "Request failed with unhandled exception",
                extra={
                    "extra_fields": {
                        "error": str(e),
                        "duration_ms": _elapsed_ms(started),
                    }
                },
            )
            raise
        else:
            if not quiet:
                level = "warning" if response.status_code >= 400 else "info"
                getattr(logger, level)(
                    "%s %s -> %d",
                    request.method,
                    request.url.path,
                    response.status_code,
                    extra={
                        "extra_fields": {
                            "status_code": response.status_code,
                            "duration_ms": _elapsed_ms(started),
                        }
                    },
                )
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_request_context()


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def add_observability_middleware(app: FastAPI) -> None:
    """Configure logging and install the request context middleware."""
    configure_logging()
    app.add_middleware(RequestContextMiddleware)
