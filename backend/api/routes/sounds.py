from fastapi import APIRouter, Path

from schemas.gallery import SoundResponse
from services.sound_resolver import normalize_sound_key, resolve_sound

router = APIRouter(prefix="/sounds", tags=["sounds"])


@router.get("/{object_type}", response_model=SoundResponse)
async def get_sound(
    object_type: str = Path(..., min_length=1, max_length=64),
) -> SoundResponse:
    """Sound cue for an object label (default click for unknown labels)."""
    return SoundResponse(
        object_type=normalize_sound_key(object_type),
        sound_url=resolve_sound(object_type),
    )
