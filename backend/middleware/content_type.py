"""Reject non-JSON bodies on the JSON API.

``POST /api/generate`` carries the drawing as a JSON string; a multipart
upload or a bare data URL would otherwise surface as a confusing validation
error.
"""

import logging
from typing import Callable

from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

logger = logging.getLogger(__name__)

METHODS_WITH_BODY = {"POST", "PUT", "PATCH"}
API_PREFIX = "/api/"


def is_json_content_type(content_type: str | None) -> bool:
    if not content_type:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


def should_validate_content_type(request: Request) -> bool:
    if request.method not in METHODS_WITH_BODY:
        return False
    if not request.url.path.startswith(API_PREFIX):
        return False
    # Empty bodies are left to route validation
    return request.headers.get("content-length", "") != "0"


class ContentTypeValidationMiddleware(BaseHTTPMiddleware):
    """Answers 415 when an API request body is not declared as JSON."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if should_validate_content_type(request):
            content_type = request.headers.get("content-type")
            if not is_json_content_type(content_type):
                logger.warning(
                    f"Invalid Content-Type for {request.method} {request.url.path}: "
                    f"expected application/json, got {content_type}"
                )
                return JSONResponse(
                    status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
                    content={
                        "detail": "Content-Type must be application/json for this endpoint",
                        "code": "UNSUPPORTED_MEDIA_TYPE",
                    },
                )

        return await call_next(request)
