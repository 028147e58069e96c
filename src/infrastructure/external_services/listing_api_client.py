"""HTTP client for the listings routes, used as the client-side relational store."""
from datetime import datetime
from typing import Any
from uuid import UUID

import httpx
import structlog

from src.application.interfaces.listing_repository import ListingRepository
from src.application.interfaces.session_provider import SessionProvider
from src.config import settings
from src.domain.entities.persisted_listing import PersistedListing
from src.domain.enums.session_failure_reason import SessionFailureReason
from src.domain.errors.generation_errors import ListingPersistenceError, SessionInvalidatedError

logger = structlog.get_logger(__name__)


def listing_from_body(body: dict[str, Any]) -> PersistedListing:
    return PersistedListing(
        id=UUID(str(body["id"])),
        user_id=str(body["user_id"]),
        title=body["title"],
        description=body["description"],
        bullet_points=list(body["bullet_points"]),
        price_min=float(body["price_min"]),
        price_max=float(body["price_max"]),
        currency=body["currency"],
        image_url=body.get("image_url"),
        created_at=datetime.fromisoformat(body["created_at"]),
        updated_at=datetime.fromisoformat(body["updated_at"]),
    )


class ListingApiClient(ListingRepository):
    """
    Stores listings through the listing generator's /listings routes.

    The server scopes every call to the bearer credential's subject, so the
    user_id passed to list_all is informational only.
    """

    def __init__(
        self,
        session_provider: SessionProvider,
        base_url: str = settings.generation_api_url,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._session_provider = session_provider
        self._base_url = f"{base_url.rstrip('/')}/listings"
        self._timeout = timeout
        self._transport = transport

    async def insert(self, listing: PersistedListing) -> PersistedListing:
        response = await self._request(
            "POST",
            "",
            json={
                "draft": {
                    "title": listing.title,
                    "description": listing.description,
                    "bullet_points": listing.bullet_points,
                    "price_min": listing.price_min,
                    "price_max": listing.price_max,
                },
                "image_url": listing.image_url,
                "currency": listing.currency,
            },
        )
        return self._parse(response)

    async def get_by_id(self, listing_id: UUID) -> PersistedListing | None:
        response = await self._request("GET", f"/{listing_id}", allow_not_found=True)
        if response.status_code == 404:
            return None
        return self._parse(response)

    async def list_all(self, *, user_id: str, limit: int = 50, offset: int = 0) -> list[PersistedListing]:
        response = await self._request("GET", "", params={"limit": limit, "offset": offset})
        body = _json(response)
        items = body.get("items", []) if isinstance(body, dict) else []
        return [self._parse_item(item) for item in items]

    async def delete(self, listing_id: UUID) -> bool:
        response = await self._request("DELETE", f"/{listing_id}", allow_not_found=True)
        return response.status_code != 404

    async def _request(
        self, method: str, path: str, *, allow_not_found: bool = False, **kwargs: Any
    ) -> httpx.Response:
        session = await self._session_provider.get_current_session()
        if session is None:
            raise SessionInvalidatedError(SessionFailureReason.MISSING_SESSION)

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = await client.request(
                    method,
                    f"{self._base_url}{path}",
                    headers={"Authorization": f"Bearer {session.access_token}"},
                    **kwargs,
                )
            except httpx.RequestError as exc:
                logger.error("listing_service_unreachable", method=method, error=str(exc))
                raise ListingPersistenceError("Failed to reach the listing service.") from exc

        if response.status_code == 401:
            raise SessionInvalidatedError(SessionFailureReason.REJECTED_BY_SERVER)
        if response.status_code == 404 and allow_not_found:
            return response
        if response.is_error:
            logger.error("listing_request_failed", method=method, status_code=response.status_code)
            raise ListingPersistenceError(_error_message(response))
        return response

    def _parse(self, response: httpx.Response) -> PersistedListing:
        return self._parse_item(_json(response))

    @staticmethod
    def _parse_item(body: Any) -> PersistedListing:
        try:
            return listing_from_body(body)
        except (KeyError, TypeError, ValueError) as exc:
            raise ListingPersistenceError("Listing service returned an invalid listing.") from exc


def _json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise ListingPersistenceError("Listing service returned an invalid listing.") from exc


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return "Failed to save listing."
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("error")
        if isinstance(detail, str) and detail:
            return detail
    return "Failed to save listing."
