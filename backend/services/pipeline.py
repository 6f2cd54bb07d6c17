"""
Drawing -> gallery record orchestration.

Steps always run in this order:

1. Preprocess  - decode and normalize the canvas snapshot (may reject)
2. Classify    - label the doodle (total)
3. Synthesize  - render the label (total)
4. Assemble    - build an immutable GalleryRecord
5. Publish     - insert it at the front of the gallery

Rejection (ImageDataError) can only happen in step 1, before any inference
call is made. Past that point the pipeline always reaches Publish.
"""

import logging
import time
from functools import lru_cache
from typing import Callable

from config import get_settings
from services.classifier import GeminiObjectClassifier, ObjectClassifier
from services.gallery_store import GalleryRecord, GalleryStore, get_gallery_store
from services.gemini_client import GeminiClient
from services.image_preprocessor import DEFAULT_MAX_SIDE, prepare_drawing
from services.sound_resolver import resolve_sound
from services.synthesizer import GeminiImageSynthesizer, ImageSynthesizer

logger = logging.getLogger(__name__)


class GenerationPipeline:
    """Classify a doodle, render it, publish the result to the gallery."""

    def __init__(
        self,
        classifier: ObjectClassifier,
        synthesizer: ImageSynthesizer,
        store: GalleryStore,
        *,
        sound_resolver: Callable[[str], str] = resolve_sound,
        max_side: int = DEFAULT_MAX_SIDE,
    ):
        self.classifier = classifier
        self.synthesizer = synthesizer
        self.store = store
        self.sound_resolver = sound_resolver
        self.max_side = max_side

    async def run(self, image_data: str) -> GalleryRecord:
        """
        Run the whole pipeline for one canvas snapshot.

        Raises ImageDataError when the drawing is missing or unreadable.
        """
        started = time.monotonic()

        image = prepare_drawing(image_data, max_side=self.max_side)

        object_type = await self.classifier.classify(image)

        image_url = await self.synthesizer.synthesize(object_type)

        record = GalleryRecord(
            object_type=object_type,
            image_url=image_url,
            sound_url=self.sound_resolver(object_type),
        )

        await self.store.insert(record)

        logger.info(
            "Generated gallery item %s (%s) in %.2fs",
            record.id,
            object_type,
            time.monotonic() - started,
        )
        return record


@lru_cache()
def get_generation_pipeline() -> GenerationPipeline:
    """Process-wide pipeline wired to Gemini and the global gallery."""
    settings = get_settings()
    client = GeminiClient.get_instance()
    return GenerationPipeline(
        classifier=GeminiObjectClassifier(client, settings.GEMINI_VISION_MODEL),
        synthesizer=GeminiImageSynthesizer(
            client,
            settings.GEMINI_IMAGE_MODEL,
            max_attempts=settings.IMAGE_MAX_ATTEMPTS,
            retry_backoff_seconds=settings.IMAGE_RETRY_BACKOFF_SECONDS,
        ),
        store=get_gallery_store(),
        max_side=settings.DRAWING_MAX_SIDE,
    )
