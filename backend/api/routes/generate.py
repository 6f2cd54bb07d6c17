import logging

from fastapi import APIRouter, Depends, HTTPException, status

from schemas.gallery import GalleryItemResponse, GenerateImageRequest
from services.errors import ImageDataError
from services.pipeline import GenerationPipeline, get_generation_pipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/generate", tags=["generate"])

GENERATION_FAILED_MESSAGE = "Failed to generate 3D image. Please try again."


@router.post(
    "",
    response_model=GalleryItemResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_from_drawing(
    request: GenerateImageRequest,
    pipeline: GenerationPipeline = Depends(get_generation_pipeline),
) -> GalleryItemResponse:
    """
    Classify the drawing, render the detected object and add it to the gallery.

    Throttling and provider errors are absorbed by fallbacks; only unreadable
    drawings (400) and unexpected failures (500) reach the client.
    """
    try:
        record = await pipeline.run(request.image_data)
    except ImageDataError:
        # Rendered as a 400 validation payload by the app-level handler
        raise
    except Exception:
        logger.exception("Error generating 3D image")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=GENERATION_FAILED_MESSAGE,
        )

    return GalleryItemResponse.from_record(record)
