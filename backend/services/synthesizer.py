"""
Stylized 3D-look render of a detected object with Gemini image generation.

``synthesize`` is total: a missing payload, throttling, a timeout or any
other provider error degrades to the placeholder from the fallback image
table (exact label, else the default entry).
"""

import asyncio
import base64
import logging
from io import BytesIO
from typing import Any, Iterable, Optional, Protocol

from google.genai import types
from PIL import Image

from services.errors import InferenceError, is_throttle_error
from services.fallbacks import fallback_image_for
from services.gemini_client import build_safety_settings
from services.image_preprocessor import sniff_image_mime_type, to_data_url

logger = logging.getLogger(__name__)

RENDER_PROMPT_TEMPLATE = (
    "A 3D render of a single {label}, centered in the frame, "
    "in a clean white studio environment with soft, even lighting. "
    "Slightly cartoon-like and child-friendly, with vibrant colors and smooth textures. "
    "The {label} is the only subject and the main focus, "
    "with gentle shadows under it to emphasize its 3D shape. "
    "No text, no labels, no watermark."
)
RESPONSE_MODALITIES = ["TEXT", "IMAGE"]


class ImageSynthesizer(Protocol):
    """Capability: render an image resource for a label."""

    async def synthesize(self, label: str) -> str:
        ...


def build_render_prompt(label: str) -> str:
    """Deterministic render prompt, parameterized only by *label*."""
    return RENDER_PROMPT_TEMPLATE.format(label=label)


def iter_response_parts(response: object) -> Iterable[object]:
    """Yield candidate parts across SDK response layouts."""
    direct_parts = getattr(response, "parts", None)
    if direct_parts:
        yield from direct_parts

    for candidate in getattr(response, "candidates", None) or ():
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or ():
            yield part


def extract_image_data_url(response: object) -> Optional[str]:
    """
    Return the first inline image of *response* as a data URL.

    Payloads Pillow cannot open are skipped.
    """
    for part in iter_response_parts(response):
        inline_data = getattr(part, "inline_data", None)
        data = getattr(inline_data, "data", None) if inline_data is not None else None
        if not data:
            continue
        try:
            image_bytes = base64.b64decode(data) if isinstance(data, str) else bytes(data)
            with Image.open(BytesIO(image_bytes)) as img:
                img.load()
                pil_format = (img.format or "PNG").lower()
        except Exception:
            continue

        mime_type = (
            sniff_image_mime_type(image_bytes)
            or getattr(inline_data, "mime_type", None)
            or f"image/{pil_format}"
        )
        return to_data_url(image_bytes, mime_type)
    return None


class GeminiImageSynthesizer:
    """ImageSynthesizer backed by a Gemini image-generation model."""

    def __init__(
        self,
        client: Any,
        model: str,
        *,
        max_attempts: int = 1,
        retry_backoff_seconds: float = 2.0,
    ):
        self._client = client
        self.model = model
        self.max_attempts = max(1, max_attempts)
        self.retry_backoff_seconds = retry_backoff_seconds

    @staticmethod
    def _build_generation_config() -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            response_modalities=RESPONSE_MODALITIES,
            safety_settings=build_safety_settings(),
        )

    async def _generate_once(self, prompt: str) -> str:
        response = await self._client.generate_content(
            model=self.model,
            contents=prompt,
            config=self._build_generation_config(),
        )
        image_url = extract_image_data_url(response)
        if image_url is None:
            raise InferenceError("No image was generated")
        return image_url

    async def synthesize(self, label: str) -> str:
        prompt = build_render_prompt(label)
        logger.debug(f"Generating 3D render: {prompt[:80]}...")

        for attempt in range(self.max_attempts):
            try:
                image_url = await self._generate_once(prompt)
                logger.info("Generated 3D render for %s", label)
                return image_url

            except asyncio.TimeoutError:
                logger.warning(
                    "Image generation for %s timed out (attempt %s/%s)",
                    label,
                    attempt + 1,
                    self.max_attempts,
                )
                break

            except Exception as e:
                if is_throttle_error(e):
                    logger.warning(
                        "Rate limit reached while rendering %s (attempt %s/%s)",
                        label,
                        attempt + 1,
                        self.max_attempts,
                    )
                    break
                logger.warning(
                    f"Image generation error for {label} "
                    f"(attempt {attempt + 1}/{self.max_attempts}): {e}"
                )
                if attempt < self.max_attempts - 1:
                    await asyncio.sleep((attempt + 1) * self.retry_backoff_seconds)
                    continue

        logger.warning("Using fallback image for: %s", label)
        return fallback_image_for(label)
