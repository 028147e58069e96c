from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID, uuid4

from src.domain.entities.listing_draft import ListingDraft
from src.domain.events.domain_events import DomainEvent, ListingSavedEvent

DEFAULT_CURRENCY = "USD"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PersistedListing:
    """
    A saved listing: the reviewed draft plus ownership and storage metadata.

    Emits a ListingSavedEvent when created from a draft. Callers are
    responsible for collecting and publishing it.
    """

    # Identity
    id: UUID = field(default_factory=uuid4)
    user_id: str = ""

    # Listing copy
    title: str = ""
    description: str = ""
    bullet_points: list[str] = field(default_factory=list)
    price_min: float = 0.0
    price_max: float = 0.0
    currency: str = DEFAULT_CURRENCY

    image_url: str | None = None

    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    _events: list[DomainEvent] = field(default_factory=list, repr=False, compare=False)

    @classmethod
    def create_from_draft(
        cls,
        *,
        user_id: str,
        draft: ListingDraft,
        image_url: str | None,
        currency: str = DEFAULT_CURRENCY,
    ) -> "PersistedListing":
        listing = cls(
            user_id=user_id,
            title=draft.title,
            description=draft.description,
            bullet_points=list(draft.bullet_points),
            price_min=draft.price_min,
            price_max=draft.price_max,
            currency=currency,
            image_url=image_url,
        )
        listing._events.append(
            ListingSavedEvent(
                listing_id=listing.id,
                user_id=user_id,
                title=draft.title,
                has_image=image_url is not None,
            )
        )
        return listing

    def to_draft(self) -> ListingDraft:
        return ListingDraft(
            title=self.title,
            description=self.description,
            bullet_points=list(self.bullet_points),
            price_min=self.price_min,
            price_max=self.price_max,
        )

    def collect_events(self) -> list[DomainEvent]:
        """Return pending events and clear the internal buffer."""
        events = list(self._events)
        self._events.clear()
        return events
