"""Middleware package for security headers, content-type checks and request logging."""

from .content_type import ContentTypeValidationMiddleware
from .logging import RequestLoggingMiddleware, configure_request_logging
from .security import SecurityHeadersMiddleware

__all__ = [
    "ContentTypeValidationMiddleware",
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
    "configure_request_logging",
]
