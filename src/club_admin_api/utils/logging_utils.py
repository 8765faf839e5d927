"""
# Logging Utilities

Structured helpers layered on top of `logging_manager`:

- `log_application_lifecycle()` records startup/shutdown milestones with a details dict.
- `log_error_with_context()` records an exception together with the operation context.
- `RequestLoggingMiddleware` logs one line per HTTP request with status and duration.
"""

import time
from typing import Any, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from club_admin_api.managers.logging_manager import get_logger

lifecycle_logger = get_logger(prefix="[LIFECYCLE]")
error_logger = get_logger(prefix="[ERROR]")
request_logger = get_logger(prefix="[REQUEST]")


def log_application_lifecycle(event: str, details: Optional[Dict[str, Any]] = None) -> None:
    """Log an application lifecycle event such as `startup_initiated` or `database_connected`."""
    lifecycle_logger.info("%s %s", event, details or {})


def log_error_with_context(error: Exception, context: Optional[Dict[str, Any]] = None) -> None:
    """Log an exception with the surrounding operation context and its traceback."""
    error_logger.error("%s: %s | context=%s", type(error).__name__, error, context or {}, exc_info=error)


def get_client_ip(request: Request) -> str:
    """Best effort client address, honouring `X-Forwarded-For` when behind a proxy."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status code, duration and client address for every request."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.time() - start_time
            request_logger.error(
                "%s %s failed after %.3fs from %s: %s",
                request.method,
                request.url.path,
                duration,
                get_client_ip(request),
                e,
            )
            raise

        duration = time.time() - start_time
        request_logger.info(
            "%s %s -> %d in %.3fs from %s",
            request.method,
            request.url.path,
            response.status_code,
            duration,
            get_client_ip(request),
        )
        return response
