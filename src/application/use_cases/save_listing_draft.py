from dataclasses import dataclass

import structlog

from src.application.interfaces.event_publisher import EventPublisher
from src.application.interfaces.listing_repository import ListingRepository
from src.domain.entities.listing_draft import ListingDraft
from src.domain.entities.persisted_listing import DEFAULT_CURRENCY, PersistedListing

logger = structlog.get_logger(__name__)


@dataclass
class SaveListingDraftInput:
    user_id: str
    draft: ListingDraft
    image_url: str | None = None
    currency: str = DEFAULT_CURRENCY


class SaveListingDraft:
    """
    Use case: store a reviewed draft as a listing owned by the user.

    Repository failures propagate as ListingPersistenceError.
    """

    def __init__(self, listing_repo: ListingRepository, event_publisher: EventPublisher) -> None:
        self._listing_repo = listing_repo
        self._event_publisher = event_publisher

    async def execute(self, input_data: SaveListingDraftInput) -> PersistedListing:
        listing = PersistedListing.create_from_draft(
            user_id=input_data.user_id,
            draft=input_data.draft,
            image_url=input_data.image_url,
            currency=input_data.currency,
        )

        stored = await self._listing_repo.insert(listing)

        await self._event_publisher.publish_many(listing.collect_events())

        logger.info(
            "listing_saved",
            listing_id=str(stored.id),
            user_id=input_data.user_id,
            has_image=input_data.image_url is not None,
        )
        return stored
