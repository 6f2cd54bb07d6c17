import logging
from enum import Enum
from functools import lru_cache
from typing import List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


logger = logging.getLogger(__name__)


class AppMode(str, Enum):
    DEV = "dev"
    PROD = "prod"


class Settings(BaseSettings):
    # Application mode - defaults to DEV for safety
    APP_MODE: AppMode = AppMode.DEV

    # Debug mode - MUST be False in production
    DEBUG: bool = False

    # Server configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Google Gemini API - required, the process refuses to start without it
    GOOGLE_API_KEY: str = Field(
        default="",
        validation_alias=AliasChoices("GOOGLE_API_KEY", "GEMINI_API_KEY"),
    )

    # Model for object detection on the doodle
    GEMINI_VISION_MODEL: str = "gemini-2.5-flash"
    # Model for the stylized 3D render
    GEMINI_IMAGE_MODEL: str = "gemini-2.5-flash-image"

    # Upper bound for every outbound inference call (seconds)
    API_TIMEOUT_SECONDS: float = 60.0
    # Synthesis attempts for transient (non-throttle) provider errors
    IMAGE_MAX_ATTEMPTS: int = 2
    IMAGE_RETRY_BACKOFF_SECONDS: float = 2.0

    # Drawing preprocessing
    DRAWING_MAX_SIDE: int = 800
    MAX_IMAGE_DATA_CHARS: int = 15_000_000

    # Comma-separated list of allowed origins
    CORS_ALLOWED_ORIGINS: str = ""

    LOG_LEVEL: str = "INFO"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """
        Get allowed CORS origins.

        Dev mode always allows the local Vite/CRA dev servers; production only
        allows what CORS_ALLOWED_ORIGINS lists.
        """
        origins: List[str] = []

        if self.APP_MODE == AppMode.DEV:
            origins = [
                "http://localhost:3000",
                "http://localhost:5173",
                "http://127.0.0.1:3000",
                "http://127.0.0.1:5173",
            ]

        if self.CORS_ALLOWED_ORIGINS:
            origins.extend(
                o.strip() for o in self.CORS_ALLOWED_ORIGINS.split(",") if o.strip()
            )

        if not origins:
            logger.warning(
                "No CORS_ALLOWED_ORIGINS configured in production. "
                "Cross-origin requests will be blocked."
            )

        return origins

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra env variables


def _validate_settings(settings: Settings) -> Settings:
    """
    Validate settings and fail fast on unusable configuration.

    The inference provider key is mandatory in every mode: without it no
    drawing can be classified or rendered.
    """
    if not settings.GOOGLE_API_KEY.strip():
        error_msg = (
            "Missing required environment variable: GOOGLE_API_KEY "
            "(GEMINI_API_KEY is accepted as well). Set it in the environment or .env"
        )
        logger.critical(error_msg)
        raise ValueError(error_msg)

    if settings.APP_MODE == AppMode.PROD and settings.DEBUG:
        error_msg = (
            "DEBUG=True in production! "
            "Set DEBUG=False or remove the DEBUG environment variable."
        )
        logger.critical(error_msg)
        raise ValueError(error_msg)

    if settings.API_TIMEOUT_SECONDS <= 0:
        raise ValueError("API_TIMEOUT_SECONDS must be positive")

    if settings.IMAGE_MAX_ATTEMPTS < 1:
        raise ValueError("IMAGE_MAX_ATTEMPTS must be at least 1")

    return settings


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Settings are validated on first access so a misconfigured process fails
    at startup instead of on the first generation request.
    """
    settings = Settings()
    return _validate_settings(settings)
