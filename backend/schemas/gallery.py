from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from config import get_settings
from services.errors import ImageDataError
from services.gallery_store import GalleryRecord
from services.image_preprocessor import MIN_IMAGE_DATA_CHARS, decode_image_data


class GenerateImageRequest(BaseModel):
    """Canvas snapshot to classify and render"""

    model_config = ConfigDict(populate_by_name=True)

    image_data: str = Field(
        ...,
        alias="imageData",
        min_length=MIN_IMAGE_DATA_CHARS,
        description="Base64 PNG/JPEG/WEBP, optionally as a data URL",
        examples=["data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAA..."],
    )

    @field_validator("image_data")
    @classmethod
    def validate_image_data(cls, value: str) -> str:
        max_chars = get_settings().MAX_IMAGE_DATA_CHARS
        if len(value) > max_chars:
            raise ValueError(f"Image data is too large (max {max_chars} characters)")
        try:
            decode_image_data(value)
        except ImageDataError as e:
            raise ValueError(str(e))
        return value


class GalleryItemResponse(BaseModel):
    """One gallery entry as the UI consumes it"""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    object_type: str = Field(..., alias="objectType")
    image_url: str = Field(..., alias="imageUrl")
    created: datetime
    sound_url: Optional[str] = Field(None, alias="soundUrl")

    @classmethod
    def from_record(cls, record: GalleryRecord) -> "GalleryItemResponse":
        return cls(
            id=record.id,
            object_type=record.object_type,
            image_url=record.image_url,
            created=record.created,
            sound_url=record.sound_url,
        )


class MessageResponse(BaseModel):
    message: str


class ClearGalleryResponse(MessageResponse):
    deleted: int = Field(0, ge=0)


class SoundResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    object_type: str = Field(..., alias="objectType")
    sound_url: str = Field(..., alias="soundUrl")
