from abc import ABC, abstractmethod

from src.domain.entities.generation_payload import ImagePayload, TextPayload
from src.domain.entities.listing_draft import ListingDraft


class GenerationClient(ABC):
    """Port for calling the draft generation service from the client."""

    @abstractmethod
    async def generate(
        self, payload: ImagePayload | TextPayload, *, access_token: str
    ) -> ListingDraft:
        """
        Raises ProviderError for classified failures and SessionInvalidatedError
        when the service rejects the credential.
        """
        ...
