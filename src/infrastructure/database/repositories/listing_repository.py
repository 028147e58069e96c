from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.application.interfaces.listing_repository import ListingRepository
from src.domain.entities.persisted_listing import PersistedListing
from src.domain.errors.generation_errors import ListingPersistenceError
from src.infrastructure.database.models import ListingModel


def _to_domain(model: ListingModel) -> PersistedListing:
    return PersistedListing(
        id=model.id,
        user_id=model.user_id,
        title=model.title,
        description=model.description,
        bullet_points=list(model.bullet_points or []),
        price_min=float(model.price_min),
        price_max=float(model.price_max),
        currency=model.currency,
        image_url=model.image_url,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def _to_model(listing: PersistedListing) -> ListingModel:
    return ListingModel(
        id=listing.id,
        user_id=listing.user_id,
        title=listing.title,
        description=listing.description,
        bullet_points=list(listing.bullet_points),
        price_min=listing.price_min,
        price_max=listing.price_max,
        currency=listing.currency,
        image_url=listing.image_url,
        created_at=listing.created_at,
        updated_at=listing.updated_at,
    )


class SqlAlchemyListingRepository(ListingRepository):
    """SQLAlchemy implementation of the saved-listings store."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def insert(self, listing: PersistedListing) -> PersistedListing:
        model = _to_model(listing)
        try:
            self._session.add(model)
            await self._session.flush()
        except SQLAlchemyError as exc:
            raise ListingPersistenceError("Failed to save listing.") from exc
        return _to_domain(model)

    async def get_by_id(self, listing_id: UUID) -> PersistedListing | None:
        model = await self._session.get(ListingModel, listing_id)
        return _to_domain(model) if model is not None else None

    async def list_all(self, *, user_id: str, limit: int = 50, offset: int = 0) -> list[PersistedListing]:
        query = (
            select(ListingModel)
            .where(ListingModel.user_id == user_id)
            .order_by(ListingModel.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self._session.execute(query)
        return [_to_domain(m) for m in result.scalars().all()]

    async def delete(self, listing_id: UUID) -> bool:
        try:
            result = await self._session.execute(delete(ListingModel).where(ListingModel.id == listing_id))
        except SQLAlchemyError as exc:
            raise ListingPersistenceError(f"Failed to delete listing {listing_id}.") from exc
        return bool(result.rowcount)
