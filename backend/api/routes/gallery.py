import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from schemas.gallery import ClearGalleryResponse, GalleryItemResponse, MessageResponse
from services.gallery_store import GalleryStore, get_gallery_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/gallery", tags=["gallery"])


@router.get("", response_model=List[GalleryItemResponse])
async def list_gallery(
    store: GalleryStore = Depends(get_gallery_store),
) -> List[GalleryItemResponse]:
    """All generated items, newest first."""
    return [GalleryItemResponse.from_record(r) for r in await store.list()]


@router.get("/{item_id}", response_model=GalleryItemResponse)
async def get_gallery_item(
    item_id: str,
    store: GalleryStore = Depends(get_gallery_store),
) -> GalleryItemResponse:
    # RecordNotFoundError is mapped to 404 by the app-level handler
    record = await store.require(item_id)
    return GalleryItemResponse.from_record(record)


@router.delete("/{item_id}", response_model=MessageResponse)
async def delete_gallery_item(
    item_id: str,
    store: GalleryStore = Depends(get_gallery_store),
) -> MessageResponse:
    if not await store.delete(item_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Gallery item not found",
        )
    return MessageResponse(message="Gallery item deleted successfully")


@router.delete("", response_model=ClearGalleryResponse)
async def clear_gallery(
    store: GalleryStore = Depends(get_gallery_store),
) -> ClearGalleryResponse:
    deleted = await store.clear()
    return ClearGalleryResponse(message="Gallery cleared successfully", deleted=deleted)
