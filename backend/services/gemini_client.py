"""
Google Gemini client wrapper.

One ``google.genai.Client`` per process. The SDK call is blocking, so every
request runs in a worker thread and is bounded by API_TIMEOUT_SECONDS; on
expiry ``asyncio.TimeoutError`` propagates to the caller, which degrades the
same way it does for throttling.
"""

import asyncio
import logging
from typing import Any, Optional

from google import genai
from google.genai import types

from config import get_settings

logger = logging.getLogger(__name__)

HARM_CATEGORIES = (
    types.HarmCategory.HARM_CATEGORY_HARASSMENT,
    types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
    types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
    types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
)


def build_safety_settings() -> list[types.SafetySetting]:
    """Same BLOCK_MEDIUM_AND_ABOVE policy for every harm category."""
    return [
        types.SafetySetting(
            category=category,
            threshold=types.HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
        )
        for category in HARM_CATEGORIES
    ]


class GeminiClient:
    """
    Thin async facade over ``genai.Client().models.generate_content``.

    Classifier and synthesizer only depend on ``generate_content`` so tests
    can hand them any object with the same coroutine.
    """

    _instance: Optional["GeminiClient"] = None
    _client: Optional[genai.Client] = None
    _initialized: bool = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @classmethod
    def get_instance(cls) -> "GeminiClient":
        if cls._instance is None:
            cls._instance = cls()
        if not cls._initialized:
            cls._instance._initialize()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        cls._instance = None
        cls._client = None
        cls._initialized = False

    def _initialize(self) -> None:
        settings = get_settings()
        if not settings.GOOGLE_API_KEY:
            raise RuntimeError("GOOGLE_API_KEY is not configured")

        try:
            GeminiClient._client = genai.Client(api_key=settings.GOOGLE_API_KEY)
        except Exception as e:
            logger.error(f"Failed to initialize Google Gemini: {e}")
            raise
        GeminiClient._initialized = True
        self.timeout_seconds = settings.API_TIMEOUT_SECONDS
        logger.info(
            "Gemini client ready: vision_model=%s image_model=%s timeout=%.0fs",
            settings.GEMINI_VISION_MODEL,
            settings.GEMINI_IMAGE_MODEL,
            self.timeout_seconds,
        )

    async def generate_content(
        self,
        *,
        model: str,
        contents: Any,
        config: Optional[types.GenerateContentConfig] = None,
    ) -> types.GenerateContentResponse:
        if self._client is None:
            raise RuntimeError("Google Gemini client not initialized")

        client = self._client
        return await asyncio.wait_for(
            asyncio.to_thread(
                lambda: client.models.generate_content(
                    model=model, contents=contents, config=config
                )
            ),
            timeout=self.timeout_seconds,
        )
