"""
In-memory session gallery.

Newest-first list of generation records shared by every request. There is
no persistence: the gallery lives as long as the process. Every operation
runs under one asyncio.Lock so interleaved requests never lose or
duplicate records.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from services.errors import RecordNotFoundError

logger = logging.getLogger(__name__)


def create_record_id() -> str:
    """Create unique record ID using UUID4."""
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class GalleryRecord:
    """One stored generation result. Immutable once created."""

    object_type: str
    image_url: str
    sound_url: Optional[str] = None
    id: str = field(default_factory=create_record_id)
    created: datetime = field(default_factory=_utcnow)


class GalleryStore:
    """
    Ordered in-memory collection of GalleryRecord, newest first.

    Usage:
        store = GalleryStore()
        await store.insert(record)
        records = await store.list()
        await store.delete(record.id)
    """

    def __init__(self):
        self._records: List[GalleryRecord] = []
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._records)

    async def insert(self, record: GalleryRecord) -> GalleryRecord:
        """Put *record* at the front of the gallery."""
        async with self._lock:
            if any(existing.id == record.id for existing in self._records):
                raise ValueError(f"Duplicate gallery record id: {record.id}")
            self._records.insert(0, record)
        logger.debug("Gallery record added: id=%s type=%s", record.id, record.object_type)
        return record

    async def list(self) -> List[GalleryRecord]:
        """Snapshot of all records, newest first."""
        async with self._lock:
            return list(self._records)

    async def get(self, record_id: str) -> Optional[GalleryRecord]:
        async with self._lock:
            return next((r for r in self._records if r.id == record_id), None)

    async def require(self, record_id: str) -> GalleryRecord:
        record = await self.get(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)
        return record

    async def delete(self, record_id: str) -> bool:
        """Remove the record with *record_id*. Returns False if it did not exist."""
        async with self._lock:
            remaining = [r for r in self._records if r.id != record_id]
            removed = len(remaining) != len(self._records)
            self._records = remaining
        if removed:
            logger.info("Gallery record deleted: id=%s", record_id)
        return removed

    async def clear(self) -> int:
        """Drop every record. Returns how many were removed."""
        async with self._lock:
            count = len(self._records)
            self._records = []
        logger.info("Gallery cleared (%d records)", count)
        return count


gallery_store = GalleryStore()


def get_gallery_store() -> GalleryStore:
    """Get the global gallery store instance."""
    return gallery_store
