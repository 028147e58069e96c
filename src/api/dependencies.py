"""
FastAPI dependency injection wiring.

Each dependency function returns a fully-constructed object with its
collaborators injected, keeping the route handlers thin.
"""
from collections.abc import AsyncGenerator

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from src.application.interfaces.ai_provider import AIProvider
from src.application.interfaces.event_publisher import EventPublisher
from src.application.interfaces.image_fetcher import ImageFetcher
from src.application.interfaces.listing_repository import ListingRepository
from src.application.use_cases.generate_listing_draft import GenerateListingDraft
from src.application.use_cases.save_listing_draft import SaveListingDraft
from src.domain.entities.session_claims import SessionClaims
from src.infrastructure.auth.jwt_verifier import SupabaseTokenVerifier
from src.infrastructure.database.connection import get_db_session
from src.infrastructure.database.repositories.listing_repository import (
    SqlAlchemyListingRepository,
)
from src.infrastructure.external_services.gemini_client import GeminiClient
from src.infrastructure.external_services.image_fetcher import HttpImageFetcher
from src.infrastructure.messaging.rabbitmq_publisher import RabbitMQPublisher


# ---- Low-level dependencies ------------------------------------------------

async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_db_session():
        yield session


def get_listing_repo(session: AsyncSession = Depends(get_session)) -> ListingRepository:
    return SqlAlchemyListingRepository(session)


def get_event_publisher() -> EventPublisher:
    return RabbitMQPublisher()


def get_ai_provider() -> AIProvider:
    return GeminiClient()


def get_image_fetcher() -> ImageFetcher:
    return HttpImageFetcher()


def get_token_verifier() -> SupabaseTokenVerifier:
    return SupabaseTokenVerifier()


def bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_claims(
    authorization: str | None = Header(default=None),
    verifier: SupabaseTokenVerifier = Depends(get_token_verifier),
) -> SessionClaims:
    return verifier.verify(bearer_token(authorization))


# ---- Use-case dependencies -------------------------------------------------

def get_generate_use_case(
    ai_provider: AIProvider = Depends(get_ai_provider),
    image_fetcher: ImageFetcher = Depends(get_image_fetcher),
    event_publisher: EventPublisher = Depends(get_event_publisher),
) -> GenerateListingDraft:
    return GenerateListingDraft(ai_provider, image_fetcher, event_publisher)


def get_save_use_case(
    listing_repo: ListingRepository = Depends(get_listing_repo),
    event_publisher: EventPublisher = Depends(get_event_publisher),
) -> SaveListingDraft:
    return SaveListingDraft(listing_repo, event_publisher)
