"""HTTP client for the generate-listing service."""
import httpx
import structlog
from pydantic import ValidationError

from src.application.interfaces.generation_client import GenerationClient
from src.config import settings
from src.domain.entities.generation_payload import ImagePayload, TextPayload, payload_to_wire
from src.domain.entities.listing_draft import ListingDraft
from src.domain.enums.provider_error_code import ProviderErrorCode
from src.domain.enums.session_failure_reason import SessionFailureReason
from src.domain.errors.generation_errors import SessionInvalidatedError
from src.domain.errors.provider_error import ProviderError

logger = structlog.get_logger(__name__)


class GenerationApiClient(GenerationClient):
    """Calls POST /generate-listing with the user's bearer credential."""

    def __init__(
        self,
        base_url: str = settings.generation_api_url,
        anon_key: str = settings.supabase_anon_key,
        timeout: float = 90.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._anon_key = anon_key
        self._timeout = timeout
        self._transport = transport

    async def generate(
        self, payload: ImagePayload | TextPayload, *, access_token: str
    ) -> ListingDraft:
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }
        if self._anon_key:
            headers["apikey"] = self._anon_key

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = await client.post(
                    f"{self._base_url}/generate-listing",
                    json=payload_to_wire(payload),
                    headers=headers,
                )
            except httpx.RequestError as exc:
                logger.error("generation_service_unreachable", error=str(exc))
                raise ProviderError(
                    ProviderErrorCode.REQUEST_FAILED,
                    502,
                    "Failed to reach the listing generator.",
                    details=str(exc),
                ) from exc

        if response.status_code == 401:
            raise SessionInvalidatedError(SessionFailureReason.REJECTED_BY_SERVER)

        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = response.text
            error = ProviderError.from_response_body(response.status_code, body)
            logger.warning(
                "generation_service_failed",
                status_code=response.status_code,
                code=error.code.value,
                retryable=error.retryable,
            )
            raise error

        try:
            return ListingDraft.model_validate(response.json()["draft"])
        except (ValueError, KeyError, TypeError, ValidationError) as exc:
            raise ProviderError(
                ProviderErrorCode.INVALID_RESPONSE,
                502,
                "Listing generator returned an invalid draft.",
            ) from exc
