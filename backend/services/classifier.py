"""
Doodle classification with Gemini Vision.

Sends the prepared drawing to the vision model with a strict one-word prompt
and reduces the reply to a single lowercase label. Classification never
fails from the caller's point of view:

- throttling or timeout -> random word from the fallback vocabulary
- any other failure      -> the literal "object"
"""

import asyncio
import logging
import random
import re
from typing import Any, Optional, Protocol

from google.genai import types

from services.errors import is_throttle_error
from services.fallbacks import DEFAULT_LABEL, random_fallback_label
from services.image_preprocessor import PreparedImage

logger = logging.getLogger(__name__)

CLASSIFY_PROMPT = (
    "What kind of object is drawn in this image? "
    "Respond with exactly one lowercase English word naming the main object, "
    "for example: apple, car, house, dog. "
    "No punctuation, no explanation. "
    "If nothing specific can be recognized, respond with: object"
)

_LABEL_PATTERN = re.compile(r"[a-z]+")


class ObjectClassifier(Protocol):
    """Capability: classify a drawing into a single-word label."""

    async def classify(self, image: PreparedImage) -> str:
        ...


def parse_label(raw_text: Optional[str]) -> str:
    """
    Reduce a model reply to one lowercase alphabetic token.

    >>> parse_label("  Apple.")
    'apple'
    >>> parse_label("It looks like a dog")
    'it'
    >>> parse_label("")
    'object'
    """
    match = _LABEL_PATTERN.search((raw_text or "").lower())
    return match.group(0) if match else DEFAULT_LABEL


class GeminiObjectClassifier:
    """ObjectClassifier backed by a Gemini vision model."""

    def __init__(
        self,
        client: Any,
        model: str,
        *,
        rng: Optional[random.Random] = None,
    ):
        self._client = client
        self.model = model
        self._rng = rng

    async def classify(self, image: PreparedImage) -> str:
        if not image.data:
            raise ValueError("Cannot classify an empty image")

        try:
            response = await self._client.generate_content(
                model=self.model,
                contents=[
                    CLASSIFY_PROMPT,
                    types.Part.from_bytes(data=image.data, mime_type=image.mime_type),
                ],
            )
        except asyncio.TimeoutError:
            label = random_fallback_label(self._rng)
            logger.warning("Object detection timed out. Using fallback object: %s", label)
            return label
        except Exception as e:
            if is_throttle_error(e):
                label = random_fallback_label(self._rng)
                logger.warning("Rate limit reached. Using fallback object: %s", label)
                return label
            logger.warning(f"Object detection failed, defaulting to '{DEFAULT_LABEL}': {e}")
            return DEFAULT_LABEL

        try:
            raw_text = response.text or ""
        except Exception as e:
            # .text raises on blocked/empty candidates in some SDK versions
            logger.warning(f"Unreadable object detection reply: {e}")
            raw_text = ""

        label = parse_label(raw_text)
        logger.info("Detected object type: %s (raw=%.40r)", label, raw_text.strip())
        return label
