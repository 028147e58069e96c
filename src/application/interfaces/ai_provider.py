from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class InlineImage:
    data: bytes
    mime_type: str


@dataclass(frozen=True)
class ProviderRequest:
    """Provider-neutral description of one draft generation call."""

    system_prompt: str
    user_text: str
    image: InlineImage | None = None
    # None means "rely on prompt instructions alone"
    response_schema: dict[str, Any] | None = None


class ProviderRequestError(Exception):
    """Raw, unclassified provider failure."""

    def __init__(self, status: int, details: str) -> None:
        self.status = status
        self.details = details
        super().__init__(f"AI provider returned {status}: {details}")


class AIProvider(ABC):
    """Port for the AI model that writes listing drafts."""

    @abstractmethod
    async def generate_content(self, request: ProviderRequest) -> str | None:
        """
        Return the model's text output (None when it produced no text).

        Raises ProviderRequestError when the provider rejects the call.
        """
        ...
