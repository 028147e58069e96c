import json

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from src.api.dependencies import get_current_claims, get_generate_use_case
from src.api.schemas.generation import ErrorResponse, GenerateListingResponse
from src.application.use_cases.generate_listing_draft import GenerateListingDraft
from src.domain.entities.session_claims import SessionClaims
from src.domain.errors.provider_error import ProviderError

logger = structlog.get_logger(__name__)
router = APIRouter(tags=["generation"])


@router.post(
    "/generate-listing",
    response_model=GenerateListingResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def generate_listing(
    request: Request,
    claims: SessionClaims = Depends(get_current_claims),
    use_case: GenerateListingDraft = Depends(get_generate_use_case),
) -> GenerateListingResponse | JSONResponse:
    """Generate a structured listing draft from an uploaded image URL or free text."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return JSONResponse({"error": "Invalid JSON body."}, status_code=400)

    structlog.contextvars.bind_contextvars(user_id=claims.subject)
    try:
        result = await use_case.execute(body)
    except ProviderError as exc:
        logger.warning(
            "generate_listing_failed",
            code=exc.code.value,
            http_status=exc.http_status,
            retryable=exc.retryable,
        )
        return JSONResponse(exc.to_response_body(), status_code=exc.http_status)
    finally:
        structlog.contextvars.unbind_contextvars("user_id")

    return GenerateListingResponse(draft=result.draft)
