from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from src.domain.entities.listing_draft import ListingDraft


class SaveListingRequest(BaseModel):
    draft: ListingDraft
    image_url: str | None = None
    currency: str = Field(default="USD", min_length=3, max_length=3)


class ListingResponse(BaseModel):
    id: UUID
    user_id: str
    title: str
    description: str
    bullet_points: list[str]
    price_min: float
    price_max: float
    currency: str
    image_url: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ListingListResponse(BaseModel):
    items: list[ListingResponse]
    count: int
