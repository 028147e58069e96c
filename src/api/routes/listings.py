from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.api.dependencies import get_current_claims, get_listing_repo, get_save_use_case
from src.api.schemas.listings import ListingListResponse, ListingResponse, SaveListingRequest
from src.application.interfaces.listing_repository import ListingRepository
from src.application.use_cases.save_listing_draft import SaveListingDraft, SaveListingDraftInput
from src.domain.entities.session_claims import SessionClaims
from src.domain.errors.generation_errors import ListingPersistenceError

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/listings", tags=["listings"])


@router.post("", response_model=ListingResponse, status_code=status.HTTP_201_CREATED)
async def save_listing(
    payload: SaveListingRequest,
    claims: SessionClaims = Depends(get_current_claims),
    use_case: SaveListingDraft = Depends(get_save_use_case),
) -> ListingResponse:
    try:
        listing = await use_case.execute(
            SaveListingDraftInput(
                user_id=str(claims.subject),
                draft=payload.draft,
                image_url=payload.image_url,
                currency=payload.currency.upper(),
            )
        )
    except ListingPersistenceError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return ListingResponse.model_validate(listing)


@router.get("", response_model=ListingListResponse)
async def list_listings(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    claims: SessionClaims = Depends(get_current_claims),
    listing_repo: ListingRepository = Depends(get_listing_repo),
) -> ListingListResponse:
    listings = await listing_repo.list_all(user_id=str(claims.subject), limit=limit, offset=offset)
    items = [ListingResponse.model_validate(listing) for listing in listings]
    return ListingListResponse(items=items, count=len(items))


@router.get("/{listing_id}", response_model=ListingResponse)
async def get_listing(
    listing_id: UUID,
    claims: SessionClaims = Depends(get_current_claims),
    listing_repo: ListingRepository = Depends(get_listing_repo),
) -> ListingResponse:
    listing = await listing_repo.get_by_id(listing_id)
    # Other users' listings are reported as missing
    if listing is None or listing.user_id != claims.subject:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Listing not found.")
    return ListingResponse.model_validate(listing)


@router.delete("/{listing_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_listing(
    listing_id: UUID,
    claims: SessionClaims = Depends(get_current_claims),
    listing_repo: ListingRepository = Depends(get_listing_repo),
) -> None:
    listing = await listing_repo.get_by_id(listing_id)
    if listing is None or listing.user_id != claims.subject:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Listing not found.")
    try:
        await listing_repo.delete(listing_id)
    except ListingPersistenceError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    logger.info("listing_deleted", listing_id=str(listing_id), user_id=claims.subject)
