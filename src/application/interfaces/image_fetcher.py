from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class FetchedImage:
    data: bytes
    content_type: str | None


class ImageFetchError(Exception):
    pass


class ImageFetcher(ABC):
    """Port for downloading the uploaded input image."""

    @abstractmethod
    async def fetch(self, url: str) -> FetchedImage:
        ...
