"""Abstract base class for property stores.

Exactly one store is active per process. ``MemoryPropertyStore`` keeps
records in an in-process list; ``PostgresPropertyStore`` persists them in a
database. Handlers only ever see this interface, so both must return the
same results for the same operations.

"Not found" is not an error: ``update`` returns None and ``delete`` returns
False. Backend failures raise ``StoreUnavailable``.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..models.property import Property, PropertyCreate, PropertyPage, PropertyUpdate
from ..query import QuerySpec


class PropertyStore(ABC):
    """Abstract base class for property stores.

    Attributes:
        backend: Short name of the storage backend (e.g., "memory", "postgres")
    """

    backend: str

    @abstractmethod
    async def create(self, payload: PropertyCreate) -> Property:
        """Store a new property.

        Args:
            payload: Validated price, location and rental yield

        Returns:
            The stored record with its assigned id and timestamps

        Raises:
            StoreUnavailable: If the backend fails
        """

    @abstractmethod
    async def query(self, spec: QuerySpec) -> PropertyPage:
        """Filter, sort and paginate stored properties.

        Args:
            spec: Normalized query parameters

        Returns:
            PropertyPage with the page's items and the total matching count

        Raises:
            StoreUnavailable: If the backend fails
        """

    @abstractmethod
    async def update(
        self, property_id: str, payload: PropertyUpdate
    ) -> Optional[Property]:
        """Replace the price, location and rental yield of a property.

        Args:
            property_id: Id of the record to update
            payload: The new field values

        Returns:
            The updated record, or None if no record has that id

        Raises:
            StoreUnavailable: If the backend fails
        """

    @abstractmethod
    async def delete(self, property_id: str) -> bool:
        """Remove a property.

        Returns:
            True if a record was removed, False if no record has that id

        Raises:
            StoreUnavailable: If the backend fails
        """

    async def close(self) -> None:
        """Release backend resources. Nothing to do by default."""
