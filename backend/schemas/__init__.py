from .gallery import (
    ClearGalleryResponse,
    GalleryItemResponse,
    GenerateImageRequest,
    MessageResponse,
    SoundResponse,
)

__all__ = [
    "ClearGalleryResponse",
    "GalleryItemResponse",
    "GenerateImageRequest",
    "MessageResponse",
    "SoundResponse",
]
