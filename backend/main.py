import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.requests import Request

from api.routes import gallery, generate, sounds
from config import AppMode, get_settings
from middleware.content_type import ContentTypeValidationMiddleware
from middleware.security import SecurityHeadersMiddleware
from services.errors import ImageDataError, RecordNotFoundError
from services.fallbacks import get_fallback_image_table

# Fails fast when GOOGLE_API_KEY is missing
settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Quiet the HTTP client used by google-genai
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("google_genai").setLevel(logging.WARNING)

APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle events - startup and shutdown"""

    logger.info(f"Starting Doodle Forge in {settings.APP_MODE.value} mode...")

    # Render the placeholder images once, before the first throttled request
    table = get_fallback_image_table()
    logger.info("Fallback image table ready (%d entries)", len(table))

    # Initialize AI client (Google Gemini API)
    from services.gemini_client import GeminiClient

    GeminiClient.get_instance()
    logger.info("Google Gemini client initialized")

    yield

    logger.info("Shutting down Doodle Forge...")


app = FastAPI(
    title="Doodle Forge",
    description="Turns canvas doodles into playful 3D-style renders with Google Gemini",
    version=APP_VERSION,
    lifespan=lifespan,
    debug=settings.DEBUG,
)

MAX_ERROR_STRING_CHARS = 400
MAX_ERROR_CONTAINER_ITEMS = 50
MAX_ERROR_DEPTH = 8
INVALID_REQUEST_MESSAGE = "Invalid request data"


def _truncate_string(value: str, max_chars: int = MAX_ERROR_STRING_CHARS) -> str:
    if len(value) <= max_chars:
        return value
    return f"{value[:max_chars]}…(truncated)"


def _sanitize_for_json(value: Any, *, _depth: int = 0) -> Any:
    """
    Make sure error payloads are always UTF-8 encodable and small.

    Validation errors echo the rejected input back, and for this API that
    input is a whole canvas snapshot, so strings are truncated.
    """
    if _depth > MAX_ERROR_DEPTH:
        return "<max depth reached>"
    if value is None or isinstance(value, (int, float, bool)):
        return value
    if isinstance(value, str):
        safe = value.encode("utf-8", errors="replace").decode("utf-8", errors="replace")
        return _truncate_string(safe)
    if isinstance(value, bytes):
        return _truncate_string(value.decode("utf-8", errors="replace"))
    if isinstance(value, (list, tuple, set)):
        items = list(value)
        out = [_sanitize_for_json(v, _depth=_depth + 1) for v in items[:MAX_ERROR_CONTAINER_ITEMS]]
        if len(items) > MAX_ERROR_CONTAINER_ITEMS:
            out.append(f"... ({len(items) - MAX_ERROR_CONTAINER_ITEMS} more items truncated)")
        return out
    if isinstance(value, dict):
        return {
            str(_sanitize_for_json(k, _depth=_depth + 1)): _sanitize_for_json(v, _depth=_depth + 1)
            for k, v in list(value.items())[:MAX_ERROR_CONTAINER_ITEMS]
        }
    # Validation contexts can hold exception instances
    try:
        return _sanitize_for_json(str(value), _depth=_depth + 1)
    except Exception:
        return "<unserializable>"


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": INVALID_REQUEST_MESSAGE,
            "errors": _sanitize_for_json(exc.errors()),
        },
    )


@app.exception_handler(ImageDataError)
async def image_data_exception_handler(request: Request, exc: ImageDataError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": INVALID_REQUEST_MESSAGE,
            "errors": [
                {"loc": ["body", exc.field], "msg": str(exc), "type": "value_error"}
            ],
        },
    )


@app.exception_handler(RecordNotFoundError)
async def record_not_found_exception_handler(
    request: Request, exc: RecordNotFoundError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": "Gallery item not found"},
    )


# Middlewares (first added = last executed)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(ContentTypeValidationMiddleware)

# Request logging (development only)
if settings.APP_MODE == AppMode.DEV:
    from middleware.logging import RequestLoggingMiddleware, configure_request_logging

    configure_request_logging(settings.LOG_LEVEL)
    app.add_middleware(RequestLoggingMiddleware)

# CORS middleware - must be last (first to process incoming requests)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["*"],
)


def _build_api_router(prefix: str, **kwargs) -> APIRouter:
    router = APIRouter(prefix=prefix, **kwargs)
    router.include_router(generate.router)
    router.include_router(gallery.router)
    router.include_router(sounds.router)
    return router


# The canvas client talks to /api/; /api/v1/ is the versioned alias
app.include_router(_build_api_router("/api"))
app.include_router(_build_api_router("/api/v1", include_in_schema=False))


@app.get("/")
async def root():
    """API root"""
    return {
        "name": "Doodle Forge API",
        "version": APP_VERSION,
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "mode": settings.APP_MODE.value,
        "ai_provider": "google_gemini",
        "vision_model": settings.GEMINI_VISION_MODEL,
        "image_model": settings.GEMINI_IMAGE_MODEL,
    }


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=(settings.APP_MODE == AppMode.DEV),
    )


if __name__ == "__main__":
    run()
