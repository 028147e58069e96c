from abc import ABC, abstractmethod


class ObjectStorage(ABC):
    """Port for storing uploaded input images."""

    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Store the object at a user-scoped path and return its public URL."""
        ...
