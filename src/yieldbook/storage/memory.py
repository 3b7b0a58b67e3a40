"""In-process property store.

Used when no database is configured. Records live in a list owned by the
store instance, newest first, and are lost when the process exits.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Optional

from ..models.property import Property, PropertyCreate, PropertyPage, PropertyUpdate
from ..query import QuerySpec
from .base import PropertyStore

logger = logging.getLogger(__name__)


class MemoryPropertyStore(PropertyStore):
    """List-backed store guarded by a single asyncio lock.

    Every operation takes the lock, so concurrent handlers never see a
    half-applied write. Queries copy the list under the lock and do the
    filtering and sorting on that snapshot after releasing it.

    Ids are creation times in epoch milliseconds, bumped by one when two
    records are created within the same millisecond.

    Example:
        store = MemoryPropertyStore()
        record = await store.create(PropertyCreate(price=1000, location="Paris", rental_yield=4.5))
        page = await store.query(parse_query(q="paris"))
    """

    backend = "memory"

    def __init__(self) -> None:
        self._records: list[Property] = []
        self._lock = asyncio.Lock()
        self._last_id = 0

    def _next_id(self) -> str:
        candidate = int(time.time() * 1000)
        if candidate <= self._last_id:
            candidate = self._last_id + 1
        self._last_id = candidate
        return str(candidate)

    def _index_of(self, property_id: str) -> Optional[int]:
        for index, record in enumerate(self._records):
            if record.id == property_id:
                return index
        return None

    async def create(self, payload: PropertyCreate) -> Property:
        async with self._lock:
            now = datetime.now(timezone.utc)
            record = Property(
                id=self._next_id(),
                price=payload.price,
                location=payload.location,
                rental_yield=payload.rental_yield,
                created_at=now,
                updated_at=now,
            )
            self._records.insert(0, record)
        logger.debug(f"Created property {record.id} in memory")
        return record.model_copy()

    async def query(self, spec: QuerySpec) -> PropertyPage:
        async with self._lock:
            snapshot = list(self._records)
        items, total = spec.apply(snapshot)
        return PropertyPage(
            items=[item.model_copy() for item in items],
            total=total,
            page=spec.page,
            page_size=spec.page_size,
        )

    async def update(
        self, property_id: str, payload: PropertyUpdate
    ) -> Optional[Property]:
        async with self._lock:
            index = self._index_of(property_id)
            if index is None:
                return None
            updated = self._records[index].model_copy(
                update={
                    "price": payload.price,
                    "location": payload.location,
                    "rental_yield": payload.rental_yield,
                    "updated_at": datetime.now(timezone.utc),
                }
            )
            self._records[index] = updated
        logger.debug(f"Updated property {property_id} in memory")
        return updated.model_copy()

    async def delete(self, property_id: str) -> bool:
        async with self._lock:
            index = self._index_of(property_id)
            if index is None:
                return False
            del self._records[index]
        logger.debug(f"Deleted property {property_id} from memory")
        return True

    async def close(self) -> None:
        async with self._lock:
            count = len(self._records)
        if count:
            logger.info(f"Discarding {count} in-memory properties")
