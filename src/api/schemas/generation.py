from typing import Any

from pydantic import BaseModel

from src.domain.entities.listing_draft import ListingDraft


class GenerateListingResponse(BaseModel):
    draft: ListingDraft


class ErrorResponse(BaseModel):
    error: str
    code: str | None = None
    details: Any = None
    retryable: bool | None = None
