"""Per-request access logging for development.

One line per request with a short correlation id, duration and a log level
derived from the status code. Request bodies are never logged: they carry
whole canvas snapshots.
"""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger("api.requests")

# Noisy endpoints that are not worth a log line
EXCLUDED_PATHS = {
    "/health",
    "/",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/favicon.ico",
}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, client, status and duration of each API request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in EXCLUDED_PATHS:
            return await call_next(request)

        request_id = uuid.uuid4().hex[:8]
        started = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        request_desc = f"[{request_id}] {request.method} {request.url.path} client={client_ip}"

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(f"{request_desc} - ERROR ({time.perf_counter() - started:.3f}s): {e}")
            raise

        duration = time.perf_counter() - started
        status_class = response.status_code // 100
        if status_class == 5:
            log_func = logger.error
        elif status_class == 4:
            log_func = logger.warning
        elif request.method == "GET":
            # Gallery polling is the noisiest traffic; keep it at debug.
            log_func = logger.debug
        else:
            log_func = logger.info

        log_func(f"{request_desc} - {response.status_code} ({duration:.3f}s)")
        response.headers["X-Request-ID"] = request_id
        return response


def configure_request_logging(log_level: str = "INFO") -> None:
    """Give the request logger its own handler and level (called once at startup)."""
    request_logger = logging.getLogger("api.requests")
    request_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    # Prevent duplicate emission via root logger handlers.
    request_logger.propagate = False

    if not request_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        request_logger.addHandler(handler)
