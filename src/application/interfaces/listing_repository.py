from abc import ABC, abstractmethod
from uuid import UUID

from src.domain.entities.persisted_listing import PersistedListing


class ListingRepository(ABC):
    """Port for the relational store holding saved listings."""

    @abstractmethod
    async def insert(self, listing: PersistedListing) -> PersistedListing:
        """Persist a new listing and return the stored record."""
        ...

    @abstractmethod
    async def get_by_id(self, listing_id: UUID) -> PersistedListing | None:
        ...

    @abstractmethod
    async def list_all(self, *, user_id: str, limit: int = 50, offset: int = 0) -> list[PersistedListing]:
        ...

    @abstractmethod
    async def delete(self, listing_id: UUID) -> bool:
        """Return True if a row was removed."""
        ...
